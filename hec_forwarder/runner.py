"""Host runner — reads log lines, groups them into flush units and retries failed units."""

import argparse
import json
import logging
import os
import random
import threading
import time
from dataclasses import dataclass

from hec_forwarder.config import _parse_bool, load_yaml_config
from hec_forwarder.errors import ConfigError, DeliveryError, NormalizationError, TransportError
from hec_forwarder.file_reader import FileTailer, read_batch
from hec_forwarder.forwarder import SplunkHECForwarder
from hec_forwarder.models import EventUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerConfig:
    input_file: str = "/var/log/app.log"
    tag: str = "app.log"
    follow: bool = False
    flush_size: int = 100
    flush_interval: float = 5.0
    max_retries: int = 5
    poll_interval: float = 0.5
    log_level: str = "INFO"


def load_runner_config(argv: list[str] | None = None) -> RunnerConfig:
    """Build RunnerConfig from defaults <- YAML ``runner:`` section <- HEC_* env vars <- CLI args."""
    parser = argparse.ArgumentParser(
        description="Splunk HEC forwarder runner", add_help=False, allow_abbrev=False
    )
    parser.add_argument("--config", type=str, default=None)
    parser.add_argument("--input-file", type=str, default=None)
    parser.add_argument("--tag", type=str, default=None)
    parser.add_argument("--follow", action="store_true", default=None)
    parser.add_argument("--flush-size", type=str, default=None)
    parser.add_argument("--flush-interval", type=str, default=None)
    parser.add_argument("--max-retries", type=str, default=None)
    parser.add_argument("--poll-interval", type=str, default=None)
    parser.add_argument("--log-level", type=str, default=None)
    args, _ = parser.parse_known_args(argv)

    yaml_data = load_yaml_config(args.config or os.environ.get("HEC_CONFIG_PATH"))
    runner_yaml = yaml_data.get("runner") or {}
    if not isinstance(runner_yaml, dict):
        raise ConfigError("The 'runner' config section must be a mapping")

    def pick(name: str, convert):
        env = "HEC_" + name.upper()
        value = getattr(args, name)
        if value is None:
            value = os.environ.get(env)
        if value is None:
            value = runner_yaml.get(name)
        if value is None:
            return getattr(RunnerConfig, name)
        try:
            return convert(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {name!r}: {value!r}") from e

    return RunnerConfig(
        input_file=pick("input_file", str),
        tag=pick("tag", str),
        follow=pick("follow", _parse_bool),
        flush_size=pick("flush_size", int),
        flush_interval=pick("flush_interval", float),
        max_retries=pick("max_retries", int),
        poll_interval=pick("poll_interval", float),
        log_level=pick("log_level", str).upper(),
    )


def parse_line(line: str, tag: str, now: float | None = None) -> EventUnit:
    """Turn one log line into an event unit.

    A line holding a JSON object becomes the record itself; anything else is
    wrapped as ``{"message": line}``.
    """
    record = None
    stripped = line.strip()
    if stripped.startswith("{"):
        try:
            record = json.loads(stripped)
        except json.JSONDecodeError:
            record = None
    if not isinstance(record, dict):
        record = {"message": line}
    return EventUnit(tag=tag, time=int(now if now is not None else time.time()), record=record)


class ForwardingRunner:
    """Feeds flush units to the forwarder and retries each failed unit as a whole.

    Retried units may produce duplicates at the collector when part of the
    unit was accepted before the failure (at-least-once delivery).
    """

    def __init__(
        self,
        forwarder: SplunkHECForwarder,
        config: RunnerConfig,
        shutdown_event: threading.Event,
    ):
        self._forwarder = forwarder
        self._config = config
        self._shutdown = shutdown_event
        self._buffer: list[EventUnit] = []
        self._last_flush = time.monotonic()
        self._sent = 0
        self._failed = 0

    @property
    def sent(self) -> int:
        return self._sent

    @property
    def failed(self) -> int:
        return self._failed

    def run(self):
        try:
            if self._config.follow:
                FileTailer(
                    self._config.input_file,
                    self._shutdown,
                    on_line=self.add_line,
                    on_idle=self._flush_if_due,
                    poll_interval=self._config.poll_interval,
                ).run()
            else:
                for line in read_batch(self._config.input_file):
                    if self._shutdown.is_set():
                        break
                    self.add_line(line)
        finally:
            self.flush()
            logger.info("Runner finished: sent=%d, failed=%d", self._sent, self._failed)

    def add_line(self, line: str):
        self._buffer.append(parse_line(line, self._config.tag))
        if len(self._buffer) >= self._config.flush_size:
            self.flush()

    def flush(self):
        self._last_flush = time.monotonic()
        if not self._buffer:
            return
        units, self._buffer = self._buffer, []
        self._send_with_retry(units)

    def _flush_if_due(self):
        if time.monotonic() - self._last_flush >= self._config.flush_interval:
            self.flush()

    def _send_with_retry(self, units: list[EventUnit]) -> bool:
        for attempt in range(self._config.max_retries + 1):
            try:
                self._sent += self._forwarder.write(units)
                return True
            except NormalizationError as e:
                logger.error("Dropping flush unit of %d events: %s", len(units), e)
                break
            except (DeliveryError, TransportError) as e:
                if attempt >= self._config.max_retries or self._shutdown.is_set():
                    logger.error(
                        "Flush unit of %d events failed after %d attempts: %s",
                        len(units),
                        attempt + 1,
                        e,
                    )
                    break
                delay = self._backoff_delay(attempt)
                logger.warning(
                    "Flush failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt + 1,
                    self._config.max_retries + 1,
                    e,
                    delay,
                )
                self._shutdown.wait(delay)
        self._failed += len(units)
        return False

    @staticmethod
    def _backoff_delay(attempt: int) -> float:
        """Exponential backoff with jitter.

        Base delay doubles each attempt (0.5s, 1s, 2s, ...), capped at 30
        seconds, then multiplied by a random factor between 0.8 and 1.2.
        """
        base = 0.5 * (2 ** attempt)
        return min(base, 30.0) * random.uniform(0.8, 1.2)
