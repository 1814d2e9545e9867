"""Plugin configuration: endpoint descriptor, options and parsing helpers."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from .errors import ConfigError

_logger = logging.getLogger(__name__)

DEFAULT_VCENTER = os.environ.get("VCTAGS_VCENTER", "https://vcenter.local/sdk")
DEFAULT_USERNAME = os.environ.get("VCTAGS_USERNAME", "")
DEFAULT_PASSWORD = os.environ.get("VCTAGS_PASSWORD", "")
DEFAULT_TIMEOUT = 180.0
DEFAULT_CACHE_INTERVAL = 600.0
DEFAULT_MOID_TAG = "moid"

SAMPLE_CONFIG = """
  ## vCenter URL to be monitored and its credential
  vcenter = "https://vcenter.local/sdk"
  username = "user@corp.local"
  password = "secret"
  ## total vSphere requests timeout
  # timeout = "3m"
  ## Optional TLS CA full file path
  # tls_ca = ""
  ## Use SSL but skip chain & host verification
  # insecure_skip_verify = false

  ## List of vSphere tag categories to populate metrics
  # vsphere_categories = []
  ## Metric's tag to identify vSphere managed object Id
  # metric_moid_tag = "moid"
  ## vSphere tag cache refresh interval
  # cache_interval = "10m"
  ## Enable debug
  # debug = false
"""

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


@dataclass(frozen=True)
class Endpoint:
    """Connection target and credentials for one vCenter."""

    url: str
    username: str
    password: str = field(repr=False)
    tls_ca: Optional[str] = None
    insecure_skip_verify: bool = False

    @property
    def base_url(self) -> str:
        """Scheme and authority only, e.g. ``https://vcenter.local``."""
        parts = urlsplit(self.url)
        return urlunsplit((parts.scheme, parts.netloc.rpartition("@")[2], "", "", ""))


def parse_url(
    vcenter_url: str,
    username: str,
    password: str,
    *,
    tls_ca: Optional[str] = None,
    insecure_skip_verify: bool = False,
) -> Endpoint:
    """Build an :class:`Endpoint` from a vCenter URL and credentials.

    A missing scheme defaults to ``https`` and a missing path to ``/sdk``.
    """
    if not isinstance(vcenter_url, str) or not vcenter_url.strip():
        raise ConfigError("vcenter URL should not be empty")
    raw = vcenter_url.strip()
    if "://" not in raw:
        raw = "https://" + raw
    try:
        parts = urlsplit(raw)
        parts.port  # noqa: B018 - validates the port number
    except ValueError as exc:
        raise ConfigError(f"Error parsing URL for vcenter: {exc}") from exc
    if parts.scheme not in ("http", "https"):
        raise ConfigError(f"Error parsing URL for vcenter: unsupported scheme {parts.scheme!r}")
    if not parts.hostname:
        raise ConfigError("Error parsing URL for vcenter: missing host")
    path = parts.path or "/sdk"
    url = urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))

    if not username:
        raise ConfigError("vcenter username should not be empty")
    if not password:
        raise ConfigError("vcenter password should not be empty")

    return Endpoint(
        url=url,
        username=username,
        password=password,
        tls_ca=tls_ca or None,
        insecure_skip_verify=bool(insecure_skip_verify),
    )


def parse_duration(value: object) -> float:
    """Parse a duration into seconds.

    Numbers are taken as seconds. Strings use Go-style units (``"90s"``,
    ``"10m"``, ``"1h30m"``, ``"500ms"``).
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ConfigError("Invalid duration: empty string")
        if text == "0":
            return 0.0
        position = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != position:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            position = match.end()
        if position != len(text):
            raise ConfigError(f"Invalid duration: {value!r}")
    else:
        raise ConfigError(f"Invalid duration: {value!r}")
    if seconds < 0:
        raise ConfigError(f"Invalid duration: {value!r}")
    return seconds


@dataclass
class Config:
    """Options of the vctags processor with the plugin's defaults."""

    vcenter: str = DEFAULT_VCENTER
    username: str = DEFAULT_USERNAME
    password: str = field(default=DEFAULT_PASSWORD, repr=False)
    timeout: float = DEFAULT_TIMEOUT
    vsphere_categories: list[str] = field(default_factory=list)
    metric_moid_tag: str = DEFAULT_MOID_TAG
    cache_interval: float = DEFAULT_CACHE_INTERVAL
    tls_ca: Optional[str] = None
    insecure_skip_verify: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        self.timeout = parse_duration(self.timeout)
        self.cache_interval = parse_duration(self.cache_interval)
        if self.timeout <= 0:
            raise ConfigError("timeout should be greater than zero")
        if self.cache_interval <= 0:
            raise ConfigError("cache_interval should be greater than zero")
        if not isinstance(self.vsphere_categories, (list, tuple)) or not all(
            isinstance(name, str) for name in self.vsphere_categories
        ):
            raise ConfigError(f"vsphere_categories should be a list of strings: {self.vsphere_categories!r}")
        self.vsphere_categories = list(self.vsphere_categories)
        if not isinstance(self.metric_moid_tag, str) or not self.metric_moid_tag:
            raise ConfigError("metric_moid_tag should not be empty")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> Config:
        """Build a config from a plugin table, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            if key not in known:
                _logger.warning("Ignoring unknown vctags option: %s", key)
                continue
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> Config:
        """Load a TOML config file.

        The plugin table may sit at the top level or under
        ``[[processors.vctags]]`` as in a telegraf execd config.
        """
        try:
            with Path(path).open("rb") as handle:
                document = tomllib.load(handle)
        except OSError as exc:
            raise ConfigError(f"Could not read config file {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Could not parse config file {path}: {exc}") from exc

        processors = document.get("processors")
        if isinstance(processors, dict) and "vctags" in processors:
            tables = processors["vctags"]
            if isinstance(tables, dict):
                tables = [tables]
            if not isinstance(tables, list) or len(tables) != 1 or not isinstance(tables[0], dict):
                raise ConfigError("Config file should define exactly one [[processors.vctags]] table")
            return cls.from_mapping(tables[0])
        return cls.from_mapping(document)

    def endpoint(self) -> Endpoint:
        """Return the immutable endpoint descriptor for these options."""
        return parse_url(
            self.vcenter,
            self.username,
            self.password,
            tls_ca=self.tls_ca,
            insecure_skip_verify=self.insecure_skip_verify,
        )


__all__ = [
    "Config",
    "DEFAULT_CACHE_INTERVAL",
    "DEFAULT_MOID_TAG",
    "DEFAULT_TIMEOUT",
    "DEFAULT_VCENTER",
    "Endpoint",
    "SAMPLE_CONFIG",
    "parse_duration",
    "parse_url",
]
