import math
from datetime import datetime, timezone
from typing import Callable, Dict, Union

from influxdb_client_3 import Point

from restinflux.parser import MessageType, ResticEvent, StatusEvent, SummaryEvent

MEASUREMENT = "restic"

FieldValue = Union[int, float, str]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def round_percent(fraction: float) -> float:
    scaled = fraction * 100
    if not math.isfinite(scaled):
        return 0.0
    # half away from zero, so 0.125 -> 13.0 rather than round()'s 12
    return math.copysign(math.floor(abs(scaled) + 0.5), scaled)


class InfluxPoint:
    def __init__(self, measurement: str, tags: Dict[str, str], fields: Dict[str, FieldValue], timestamp: datetime):
        self.measurement = measurement
        self.tags = tags
        self.fields = fields
        self.timestamp = timestamp

    def to_dict(self):
        return {
            "measurement": self.measurement,
            "tags": self.tags,
            "fields": self.fields,
            "time": self.timestamp,
        }

    def to_point(self) -> Point:
        point = Point(self.measurement)
        for key, value in self.tags.items():
            point = point.tag(key, value)
        for key, value in self.fields.items():
            point = point.field(key, value)
        return point.time(self.timestamp)

    def __str__(self):
        return f"InfluxPoint(measurement={self.measurement}, tags={self.tags}, fields={self.fields}, timestamp={self.timestamp})"


def status_point(event: StatusEvent, repository: str, timestamp: datetime) -> InfluxPoint:
    # current_files is unbounded, so it stays out of the point
    return InfluxPoint(
        measurement=MEASUREMENT,
        tags={
            "repository": repository,
            "type": MessageType.STATUS.value,
        },
        fields={
            "seconds_elapsed": event.seconds_elapsed,
            "seconds_remaining": event.seconds_remaining,
            "percent_done": round_percent(event.percent_done),
            "total_files": event.total_files,
            "files_done": event.files_done,
            "total_bytes": event.total_bytes,
            "bytes_done": event.bytes_done,
            "error_count": event.error_count,
        },
        timestamp=timestamp,
    )


def summary_point(event: SummaryEvent, repository: str, timestamp: datetime) -> InfluxPoint:
    return InfluxPoint(
        measurement=MEASUREMENT,
        tags={
            "repository": repository,
            "type": MessageType.SUMMARY.value,
            "snapshot_id": event.snapshot_id,
        },
        fields={
            "files_new": event.files_new,
            "files_changed": event.files_changed,
            "files_unmodified": event.files_unmodified,
            "directories_new": event.directories_new,
            "directories_changed": event.directories_changed,
            "directories_unmodified": event.directories_unmodified,
            "data_blobs": event.data_blobs,
            "tree_blobs": event.tree_blobs,
            "data_added": event.data_added,
            "total_files_processed": event.total_files_processed,
            "total_bytes_processed": event.total_bytes_processed,
            "total_duration": event.total_duration,
        },
        timestamp=timestamp,
    )


_MAPPERS = {
    MessageType.STATUS: status_point,
    MessageType.SUMMARY: summary_point,
}


def to_influx_point(event: ResticEvent, repository: str, clock: Clock = utc_now) -> InfluxPoint:
    """Map a decoded restic event to a point stamped with the current time."""
    return _MAPPERS[event.kind](event, repository, clock())
