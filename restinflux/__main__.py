import logging
import sys

from restinflux.config import ConfigError, load_config
from restinflux.durability.sink import InfluxSink
from restinflux.parser import default_processor
from restinflux.pipeline import Pipeline

logger = logging.getLogger("restinflux")


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(argv)
        logging.getLogger().setLevel(config.log_level)
        sink = InfluxSink.from_config(config)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    with sink:
        pipeline = Pipeline(
            default_processor(),
            sink,
            config.repository,
            ship_summaries=config.ship_summaries,
        )
        stats = pipeline.run(sys.stdin)

    logger.info("finished: lines=%d points=%d skipped=%d failed=%d",
                stats.lines, stats.points, stats.skipped, stats.failed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
