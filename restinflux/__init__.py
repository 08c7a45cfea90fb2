"""Ship restic's JSON backup progress to InfluxDB."""

__version__ = "0.1.0"
