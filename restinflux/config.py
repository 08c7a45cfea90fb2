"""Configuration: repository from the command line, InfluxDB settings from env vars."""

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

ENV_PREFIX = "RESTINFLUXDB2_"

# (config attribute, env var suffix, description used in error messages)
_REQUIRED_ENV = (
    ("url", "URL", "influxdb2 url"),
    ("token", "TOKEN", "influxdb2 token"),
    ("org", "ORG", "influxdb2 org"),
    ("bucket", "BUCKET", "influxdb2 bucket"),
)


class ConfigError(Exception):
    """Raised when required configuration is missing."""


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    repository: str
    url: str
    token: str
    org: str
    bucket: str
    ship_summaries: bool = True
    log_level: str = "INFO"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restinflux",
        description="Ship `restic backup --json` progress from stdin to InfluxDB.",
    )
    parser.add_argument("repository", help="restic repository name, used as the repository tag")
    return parser


def load_config(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build Config from CLI args and RESTINFLUXDB2_* env vars.

    Raises ConfigError if an InfluxDB setting is missing; argparse exits on a
    missing repository argument.
    """
    if environ is None:
        environ = os.environ
    args = build_arg_parser().parse_args(argv)
    if not args.repository:
        raise ConfigError("restic repository not specified (as a command line argument)")

    kwargs = {"repository": args.repository}
    for attr, suffix, description in _REQUIRED_ENV:
        name = ENV_PREFIX + suffix
        if name not in environ:
            raise ConfigError(f"{description} not specified ({name})")
        kwargs[attr] = environ[name]

    kwargs["ship_summaries"] = _parse_bool(environ.get(ENV_PREFIX + "SHIP_SUMMARIES", "true"))
    log_level = environ.get(ENV_PREFIX + "LOG_LEVEL", Config.log_level).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"unknown log level {log_level!r} ({ENV_PREFIX}LOG_LEVEL)")
    kwargs["log_level"] = log_level
    return Config(**kwargs)
