# subdomain_engine/run_sweeper.py
"""Sweeper worker - checks DNS propagation and retries failed registrar writes."""

import logging
import signal
import sys
import threading

from subdomain_engine.container import build_container

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


class SweeperWorker:
    """
    Standalone sweeper process.

    Runs the same schedule the API can host, for deployments that keep
    background work out of the web process.
    """

    def __init__(self, container=None):
        self.container = container or build_container()
        self._stop_requested = threading.Event()

        logger.info("Sweeper Worker initialized")
        logger.info(f"Interval: {self.container.scheduler.interval_seconds}s")

    def start(self):
        """Start the schedule and block until a shutdown signal."""
        config = self.container.sweeper.config

        logger.info("=" * 80)
        logger.info("🔄 DNS SWEEPER STARTED")
        logger.info("=" * 80)
        logger.info(f"Interval: {config.interval_seconds}s")
        logger.info(f"Batch limit: {config.batch_limit}")
        logger.info(f"Delays: {config.propagation_delay_seconds}s propagation, {config.retry_delay_seconds}s retry")
        logger.info("Press Ctrl+C to stop")
        logger.info("=" * 80)

        # Register signal handlers
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.container.scheduler.start()
        self._stop_requested.wait()

        self.container.scheduler.stop()
        logger.info("Sweeper Worker stopped")

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, stopping after the current cycle...")
        self._stop_requested.set()


def main():
    """Main entry point."""
    logger.info("Starting DNS Sweeper")

    try:
        worker = SweeperWorker()
        worker.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
