import json
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Union

logger = logging.getLogger(__name__)


class MessageType(Enum):
    """Kinds of message found in the ``message_type`` field of restic's JSON output."""

    STATUS = "status"
    SUMMARY = "summary"
    UNKNOWN = "unknown"


def _int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is a subclass of int, but JSON true/false are not counts
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def _float(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    try:
        value = float(value)
    except OverflowError:
        return 0.0
    # NaN and infinities are out of range for a progress field
    return value if math.isfinite(value) else 0.0


def _str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


@dataclass(frozen=True)
class StatusEvent:
    """Progress snapshot emitted repeatedly while a backup runs."""

    seconds_elapsed: int = 0
    seconds_remaining: int = 0
    percent_done: float = 0.0
    total_files: int = 0
    files_done: int = 0
    total_bytes: int = 0
    bytes_done: int = 0
    error_count: int = 0
    current_files: List[str] = field(default_factory=list)

    kind = MessageType.STATUS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatusEvent":
        return cls(
            seconds_elapsed=_int(data, "seconds_elapsed"),
            seconds_remaining=_int(data, "seconds_remaining"),
            percent_done=_float(data, "percent_done"),
            total_files=_int(data, "total_files"),
            files_done=_int(data, "files_done"),
            total_bytes=_int(data, "total_bytes"),
            bytes_done=_int(data, "bytes_done"),
            error_count=_int(data, "error_count"),
            current_files=_str_list(data, "current_files"),
        )


@dataclass(frozen=True)
class SummaryEvent:
    """Final report of a completed backup."""

    files_new: int = 0
    files_changed: int = 0
    files_unmodified: int = 0
    directories_new: int = 0
    directories_changed: int = 0
    directories_unmodified: int = 0
    data_blobs: int = 0
    tree_blobs: int = 0
    data_added: int = 0
    total_files_processed: int = 0
    total_bytes_processed: int = 0
    total_duration: float = 0.0
    snapshot_id: str = ""

    kind = MessageType.SUMMARY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SummaryEvent":
        return cls(
            files_new=_int(data, "files_new"),
            files_changed=_int(data, "files_changed"),
            files_unmodified=_int(data, "files_unmodified"),
            directories_new=_int(data, "dirs_new"),
            directories_changed=_int(data, "dirs_changed"),
            directories_unmodified=_int(data, "dirs_unmodified"),
            data_blobs=_int(data, "data_blobs"),
            tree_blobs=_int(data, "tree_blobs"),
            data_added=_int(data, "data_added"),
            total_files_processed=_int(data, "total_files_processed"),
            total_bytes_processed=_int(data, "total_bytes_processed"),
            total_duration=_float(data, "total_duration"),
            snapshot_id=_str(data, "snapshot_id"),
        )


ResticEvent = Union[StatusEvent, SummaryEvent]


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def load_object(line: str) -> Optional[Dict[str, Any]]:
    """
    Parse a line of restic output.

    Returns:
        The decoded JSON object, or None if the line is not an object in strict
        JSON (NaN and Infinity literals are rejected)
    """
    try:
        data = json.loads(line, parse_constant=_reject_constant)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def raw_message_type(data: Optional[Dict[str, Any]]) -> str:
    if data is None:
        return ""
    return _str(data, "message_type")


def classify_message_type(raw: str) -> MessageType:
    lowered = raw.lower()
    for kind in (MessageType.STATUS, MessageType.SUMMARY):
        if lowered == kind.value:
            return kind
    return MessageType.UNKNOWN


def classify(line: str) -> MessageType:
    return classify_message_type(raw_message_type(load_object(line)))


def decode_status(line: str) -> StatusEvent:
    return StatusEvent.from_dict(load_object(line) or {})


def decode_summary(line: str) -> SummaryEvent:
    return SummaryEvent.from_dict(load_object(line) or {})


class JsonHandler(ABC):
    """Interface for decoding one kind of restic message."""

    message_type: MessageType

    @abstractmethod
    def process(self, data: Dict[str, Any]) -> ResticEvent:
        """
        Decode the JSON data into a typed event.

        Args:
            data: The parsed JSON object

        Returns:
            The decoded event; missing or mistyped fields are left at their zero value
        """
        pass


class StatusHandler(JsonHandler):
    message_type = MessageType.STATUS

    def process(self, data: Dict[str, Any]) -> StatusEvent:
        return StatusEvent.from_dict(data)


class SummaryHandler(JsonHandler):
    message_type = MessageType.SUMMARY

    def process(self, data: Dict[str, Any]) -> SummaryEvent:
        return SummaryEvent.from_dict(data)


class JsonProcessor:
    """
    Routes restic JSON lines to the handler registered for their message type.
    """

    def __init__(self):
        self.handlers: Dict[MessageType, JsonHandler] = {}

    def register_handler(self, handler: JsonHandler) -> None:
        """
        Register a new handler.

        Args:
            handler: The handler to register; it replaces any handler already
                registered for the same message type
        """
        self.handlers[handler.message_type] = handler

    def process_string(self, input_string: str) -> Optional[ResticEvent]:
        """
        Process a JSON line using the registered handlers.

        Lines that are not JSON objects and messages of an unknown type are
        reported and skipped.

        Args:
            input_string: One line of restic output

        Returns:
            The decoded event, or None if the line was skipped
        """
        data = load_object(input_string)
        if data is None:
            logger.warning("skipping invalid JSON line: %s", input_string.rstrip("\n")[:200])
            return None

        raw = raw_message_type(data)
        handler = self.handlers.get(classify_message_type(raw))
        if handler is None:
            logger.warning("unknown restic message type: %s", raw)
            return None
        return handler.process(data)


def default_processor() -> JsonProcessor:
    processor = JsonProcessor()
    processor.register_handler(StatusHandler())
    processor.register_handler(SummaryHandler())
    return processor
