"""Tests for classifying and decoding restic JSON lines."""

import json
import logging

from restinflux.parser import (
    JsonProcessor,
    MessageType,
    StatusEvent,
    StatusHandler,
    SummaryEvent,
    SummaryHandler,
    classify,
    decode_status,
    decode_summary,
    default_processor,
)

STATUS_LINE = json.dumps({
    "message_type": "status",
    "seconds_elapsed": 12,
    "seconds_remaining": 30,
    "percent_done": 0.4567,
    "total_files": 10,
    "files_done": 4,
    "total_bytes": 2048,
    "bytes_done": 1024,
    "error_count": 1,
    "current_files": ["/home/a.txt", "/home/b.txt"],
})

SUMMARY_LINE = json.dumps({
    "message_type": "summary",
    "files_new": 5,
    "files_changed": 2,
    "files_unmodified": 100,
    "dirs_new": 1,
    "dirs_changed": 3,
    "dirs_unmodified": 20,
    "data_blobs": 7,
    "tree_blobs": 4,
    "data_added": 4096,
    "total_files_processed": 107,
    "total_bytes_processed": 999999,
    "total_duration": 12.5,
    "snapshot_id": "abc123",
})


class TestClassify:
    def test_known_types(self):
        assert classify(STATUS_LINE) is MessageType.STATUS
        assert classify(SUMMARY_LINE) is MessageType.SUMMARY

    def test_case_insensitive(self):
        assert classify('{"message_type": "STATUS"}') is MessageType.STATUS
        assert classify('{"message_type": "Summary"}') is MessageType.SUMMARY

    def test_unknown_values(self):
        for line in (
            '{"message_type": "verbose_status"}',
            '{"message_type": ""}',
            '{"files_new": 1}',
            '{"message_type": 7}',
            "not json",
            "[1, 2, 3]",
        ):
            assert classify(line) is MessageType.UNKNOWN

    def test_malformed_fields_still_classify(self):
        assert classify('{"message_type": "status", "total_files": "lots"}') is MessageType.STATUS


class TestDecodeStatus:
    def test_all_fields(self):
        event = decode_status(STATUS_LINE)
        assert event == StatusEvent(
            seconds_elapsed=12,
            seconds_remaining=30,
            percent_done=0.4567,
            total_files=10,
            files_done=4,
            total_bytes=2048,
            bytes_done=1024,
            error_count=1,
            current_files=["/home/a.txt", "/home/b.txt"],
        )

    def test_missing_fields_default_to_zero(self):
        event = decode_status('{"message_type": "status", "files_done": 4}')
        assert event.files_done == 4
        assert event.total_files == 0
        assert event.percent_done == 0.0
        assert event.current_files == []

    def test_mismatched_types_default_to_zero(self):
        event = decode_status(json.dumps({
            "message_type": "status",
            "total_files": "ten",
            "error_count": True,
            "percent_done": "half",
            "current_files": "/single/path",
            "files_done": 3,
        }))
        assert event.total_files == 0
        assert event.error_count == 0
        assert event.percent_done == 0.0
        assert event.current_files == []
        assert event.files_done == 3

    def test_integer_percent_is_float(self):
        event = decode_status('{"message_type": "status", "percent_done": 1}')
        assert event.percent_done == 1.0
        assert isinstance(event.percent_done, float)

    def test_non_string_current_files_dropped(self):
        event = decode_status('{"current_files": ["/a", 3, null, "/b"]}')
        assert event.current_files == ["/a", "/b"]

    def test_invalid_json_gives_zero_event(self):
        assert decode_status("{broken") == StatusEvent()

    def test_out_of_range_numbers_default_to_zero(self):
        event = decode_status('{"percent_done": 1e400, "files_done": 2}')
        assert event.percent_done == 0.0
        assert event.files_done == 2
        assert decode_status('{"percent_done": -1e400}').percent_done == 0.0
        assert decode_status('{"percent_done": ' + "9" * 400 + "}").percent_done == 0.0

    def test_nan_and_infinity_literals_are_invalid_json(self):
        for literal in ("NaN", "Infinity", "-Infinity"):
            line = '{"message_type": "status", "percent_done": ' + literal + "}"
            assert classify(line) is MessageType.UNKNOWN
            assert decode_status(line) == StatusEvent()


class TestDecodeSummary:
    def test_all_fields(self):
        event = decode_summary(SUMMARY_LINE)
        assert event.files_new == 5
        assert event.files_changed == 2
        assert event.files_unmodified == 100
        assert event.directories_new == 1
        assert event.directories_changed == 3
        assert event.directories_unmodified == 20
        assert event.data_blobs == 7
        assert event.tree_blobs == 4
        assert event.data_added == 4096
        assert event.total_files_processed == 107
        assert event.total_bytes_processed == 999999
        assert event.total_duration == 12.5
        assert event.snapshot_id == "abc123"

    def test_missing_fields(self):
        event = decode_summary('{"message_type":"summary","snapshot_id":"abc123","files_new":5}')
        assert event == SummaryEvent(files_new=5, snapshot_id="abc123")

    def test_non_string_snapshot_id(self):
        assert decode_summary('{"snapshot_id": 42}').snapshot_id == ""


class TestJsonProcessor:
    def test_dispatches_by_type(self):
        processor = default_processor()
        assert isinstance(processor.process_string(STATUS_LINE), StatusEvent)
        assert isinstance(processor.process_string(SUMMARY_LINE), SummaryEvent)

    def test_unknown_type_reported_once(self, caplog):
        processor = default_processor()
        with caplog.at_level(logging.WARNING, logger="restinflux.parser"):
            result = processor.process_string('{"message_type": "UNKNOWN_X"}')
        assert result is None
        matching = [r for r in caplog.records if "UNKNOWN_X" in r.getMessage()]
        assert len(matching) == 1

    def test_unknown_type_any_case_keeps_raw_text(self, caplog):
        processor = default_processor()
        with caplog.at_level(logging.WARNING, logger="restinflux.parser"):
            assert processor.process_string('{"message_type": "unknown_x"}') is None
        assert "unknown_x" in caplog.text

    def test_invalid_json_skipped(self, caplog):
        processor = default_processor()
        with caplog.at_level(logging.WARNING, logger="restinflux.parser"):
            assert processor.process_string("this is not json\n") is None
        assert "skipping invalid JSON line" in caplog.text

    def test_unregistered_handler_is_unknown(self):
        processor = JsonProcessor()
        processor.register_handler(StatusHandler())
        assert processor.process_string(SUMMARY_LINE) is None

    def test_register_replaces_same_type(self):
        class OtherSummary(SummaryHandler):
            def process(self, data):
                return SummaryEvent(snapshot_id="replaced")

        processor = default_processor()
        processor.register_handler(OtherSummary())
        assert processor.process_string(SUMMARY_LINE).snapshot_id == "replaced"
