"""Line-by-line loop from restic output to the InfluxDB sink."""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from restinflux.durability.influx_point import Clock, utc_now, to_influx_point
from restinflux.durability.sink import SinkError
from restinflux.parser import JsonProcessor, MessageType

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    lines: int = 0
    points: int = 0
    skipped: int = 0
    summaries_logged: int = 0
    failed: int = 0
    read_error: Optional[str] = None


class Pipeline:
    """Classifies, maps and ships one line at a time.

    ``sink`` needs ``write(point)`` and ``flush()``. It is flushed after every
    point, so a point is sent before the next line is read.
    """

    def __init__(self, processor: JsonProcessor, sink, repository: str,
                 ship_summaries: bool = True, clock: Clock = utc_now):
        self._processor = processor
        self._sink = sink
        self._repository = repository
        self._ship_summaries = ship_summaries
        self._clock = clock

    def run(self, lines: Iterable[str]) -> RunStats:
        stats = RunStats()
        iterator = iter(lines)
        while True:
            # only reading is guarded; errors from handling a line propagate
            try:
                line = next(iterator)
            except StopIteration:
                break
            except (OSError, UnicodeDecodeError) as e:
                stats.read_error = str(e)
                logger.error("reading data from restic: %s", e)
                break

            if not line.strip():
                logger.debug("skipping blank line")
                continue
            stats.lines += 1
            self._handle_line(line, stats)
        return stats

    def _handle_line(self, line: str, stats: RunStats) -> None:
        event = self._processor.process_string(line)
        if event is None:
            stats.skipped += 1
            return

        point = to_influx_point(event, self._repository, self._clock)
        if event.kind is MessageType.SUMMARY and not self._ship_summaries:
            logger.info("restic summary: %s", point)
            stats.summaries_logged += 1
            return

        self._sink.write(point)
        try:
            self._sink.flush()
        except SinkError as e:
            logger.error("dropping point: %s", e)
            stats.failed += 1
            return
        stats.points += 1
