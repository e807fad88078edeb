import os
import sys
import time
import logging
from collections import OrderedDict
from typing import NamedTuple
import psutil


LOGGER_NAME = 'comments_analysis'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR
}
BYTES_PER_MB = 1024 * 1024


class Logger:
    """Configures the ``comments_analysis`` logger from the ``logging`` section.

    Every pipeline component logs through ``Logger(config).logger``. Handlers
    left by an earlier run in the same process are closed and replaced, so a
    second run never duplicates its output.
    """

    def __init__(self, config):
        self.logger = logging.getLogger(LOGGER_NAME)
        self._remove_handlers()

        try:
            self._configure(config.get_logging_config())
        except (KeyError, TypeError, ValueError, OSError) as e:
            self._remove_handlers()
            self.logger.setLevel(logging.INFO)
            self._add_handler(logging.StreamHandler(sys.stdout), logging.INFO)
            self.logger.error(f"Failed to initialize logger with config: {str(e)}")

    def _remove_handlers(self):
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

    def _add_handler(self, handler, level):
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(handler)

    def _configure(self, log_config):
        level = LOG_LEVELS.get(str(log_config.get('level', 'INFO')).upper(), logging.INFO)
        self.logger.setLevel(level)

        if log_config.get('console_output', True):
            self._add_handler(logging.StreamHandler(sys.stdout), level)

        log_file = log_config.get('log_file')
        if log_file:
            os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
            self._add_handler(logging.FileHandler(log_file, encoding='utf-8'), level)

        self.logger.debug(
            f"Logging at {logging.getLevelName(level)}"
            f"{' to ' + log_file if log_file else ''}"
        )


class StageStats(NamedTuple):
    """Wall-clock time and resident memory of one finished stage."""
    seconds: float
    rss_mb: float
    rss_delta_mb: float


class PerformanceMonitor:
    """Times the pipeline stages and samples resident memory around each one."""

    def __init__(self):
        self.process = psutil.Process(os.getpid())
        self.stages = OrderedDict()
        self._running = {}

    def rss_mb(self):
        """Current resident set size of this process in MB."""
        return self.process.memory_info().rss / BYTES_PER_MB

    def start_timer(self, stage):
        self._running[stage] = (time.perf_counter(), self.rss_mb())

    def stop_timer(self, stage):
        """
        Finishes a stage started with ``start_timer``.

        Args:
            stage: Stage name

        Returns:
            float: Duration in seconds, or None if the stage was never started
        """
        if stage not in self._running:
            return None

        started_at, rss_before = self._running.pop(stage)
        rss_after = self.rss_mb()
        stats = StageStats(time.perf_counter() - started_at, rss_after, rss_after - rss_before)
        self.stages[stage] = stats
        return stats.seconds

    def summary(self):
        """One line per finished stage, in completion order."""
        return [
            f"{stage}: {stats.seconds:.2f}s, {stats.rss_mb:.1f} MB RSS ({stats.rss_delta_mb:+.1f} MB)"
            for stage, stats in self.stages.items()
        ]
