"""Configuration module — frozen dataclass loaded from YAML, env vars and CLI args."""

import argparse
import logging
import os
import socket
from dataclasses import dataclass, fields

import yaml

from hec_forwarder.errors import ConfigError
from hec_forwarder.index_template import parse_pattern

logger = logging.getLogger(__name__)

SOURCETYPE_FROM_TAG = "tag"
COLLECTOR_PATH = "/services/collector/event"


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def resolve_event_host() -> str:
    """Return the local hostname, or ``"unknown"`` if it cannot be resolved."""
    try:
        hostname = socket.gethostname()
    except OSError as e:
        logger.warning("Could not resolve local hostname: %s", e)
        return "unknown"
    return hostname or "unknown"


@dataclass(frozen=True)
class ForwarderConfig:
    token: str = ""
    host: str = "localhost"
    protocol: str = "http"
    port: int = 8088
    index: str = "main"
    event_host: str | None = None
    source: str = "fluentd"
    sourcetype: str = SOURCETYPE_FROM_TAG
    send_event_as_json: bool = False
    usejson: bool = True
    send_batched_events: bool = False
    dynamic_index: bool = False
    dynamic_index_pattern: str | None = None
    insecure_skip_verify: bool = False
    ca_file: str = ""
    connect_timeout: float = 5.0
    read_timeout: float = 30.0
    skip_invalid_events: bool = False

    def __post_init__(self):
        if not self.token:
            raise ConfigError("'token' parameter is required")
        if self.protocol not in ("http", "https"):
            raise ConfigError(f"'protocol' must be http or https, got {self.protocol!r}")
        try:
            object.__setattr__(self, "port", int(self.port))
            object.__setattr__(self, "connect_timeout", float(self.connect_timeout))
            object.__setattr__(self, "read_timeout", float(self.read_timeout))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e
        if not 0 < self.port < 65536:
            raise ConfigError(f"'port' out of range: {self.port}")
        if self.dynamic_index:
            if not self.dynamic_index_pattern:
                raise ConfigError("'dynamic_index_pattern' is required when dynamic_index is enabled")
            parse_pattern(self.dynamic_index_pattern)
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ConfigError("timeouts must be positive")
        if self.event_host is None:
            object.__setattr__(self, "event_host", resolve_event_host())

    @property
    def service_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}{COLLECTOR_PATH}"


_FIELD_TYPES = {
    "port": int,
    "connect_timeout": float,
    "read_timeout": float,
    "send_event_as_json": _parse_bool,
    "usejson": _parse_bool,
    "send_batched_events": _parse_bool,
    "dynamic_index": _parse_bool,
    "insecure_skip_verify": _parse_bool,
    "skip_invalid_events": _parse_bool,
}


def _coerce(name: str, value):
    convert = _FIELD_TYPES.get(name, str)
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name!r}: {value!r}") from e


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns {} if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Splunk HEC forwarder", add_help=False, allow_abbrev=False
    )
    parser.add_argument("--config", type=str, default=None)
    for f in fields(ForwarderConfig):
        parser.add_argument("--" + f.name.replace("_", "-"), dest=f.name, type=str, default=None)
    return parser


def load_config(argv: list[str] | None = None) -> ForwarderConfig:
    """Build ForwarderConfig from defaults <- YAML file <- env vars <- CLI args.

    Unknown CLI arguments are left for other parsers. Pass argv for
    testability; when None, argparse reads sys.argv.
    """
    args, _ = build_arg_parser().parse_known_args(argv)
    config_path = args.config or os.environ.get("HEC_CONFIG_PATH")
    yaml_data = load_yaml_config(config_path)

    known = {f.name for f in fields(ForwarderConfig)}
    kwargs = {}
    for key, value in yaml_data.items():
        if key in known and value is not None:
            kwargs[key] = _coerce(key, value)

    for name in known:
        env_value = os.environ.get("HEC_" + name.upper())
        if env_value is not None:
            kwargs[name] = _coerce(name, env_value)
        cli_value = getattr(args, name)
        if cli_value is not None:
            kwargs[name] = _coerce(name, cli_value)

    return ForwarderConfig(**kwargs)
