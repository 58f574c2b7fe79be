"""Entry point for the Splunk HEC forwarder."""

import logging
import signal
import sys
import threading

from hec_forwarder.config import load_config
from hec_forwarder.errors import ConfigError
from hec_forwarder.forwarder import SplunkHECForwarder
from hec_forwarder.runner import ForwardingRunner, load_runner_config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run the forwarder. Returns 0 on success, 1 if any flush unit failed, 2 on bad config."""
    try:
        runner_config = load_runner_config(argv)
    except ConfigError as e:
        logging.basicConfig(format=LOG_FORMAT, stream=sys.stderr)
        logger.error("Invalid configuration: %s", e)
        return 2

    logging.basicConfig(
        level=getattr(logging, runner_config.log_level, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    try:
        config = load_config(argv)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    shutdown_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    forwarder = SplunkHECForwarder(config)
    logger.info(
        "Forwarding %s to %s (batched=%s, follow=%s)",
        runner_config.input_file,
        config.service_url,
        config.send_batched_events,
        runner_config.follow,
    )

    runner = ForwardingRunner(forwarder, runner_config, shutdown_event)
    runner.run()
    logger.info("Forwarder metrics: %s", forwarder.metrics.snapshot())
    return 1 if runner.failed else 0


if __name__ == "__main__":
    sys.exit(main())
