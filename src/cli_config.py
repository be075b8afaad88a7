"""Runtime configuration for the verifier.

Precedence, highest first: CLI flags, environment variables, the YAML file
given with ``--config``, then the defaults in ``constants.Constants``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

from common.errors import ConfigError
from common.http_client import HttpSettings
from constants import Constants

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_bool(value: Any, name: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{value}'")


def _parse_seconds(value: Any, name: str) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number of seconds, got '{value}'") from exc
    if seconds <= 0:
        raise ConfigError(f"{name} must be positive")
    return seconds


@dataclass(frozen=True)
class Timeouts:
    connect: float = Constants.CONNECT_TIMEOUT
    total: float = Constants.REQUEST_TIMEOUT

    def clamped(self) -> "Timeouts":
        """Cap at the documented network bounds."""
        return Timeouts(
            connect=min(self.connect, Constants.CONNECT_TIMEOUT),
            total=min(self.total, Constants.REQUEST_TIMEOUT),
        )


@dataclass(frozen=True)
class VerifierConfig:
    """Everything the verifier reads at runtime."""
    keyring_root: str = Constants.DEFAULT_KEYRING_DIR
    database_path: str = Constants.DEFAULT_CHECKSUMS_DB
    require_verified: bool = False
    timeouts: Timeouts = field(default_factory=Timeouts)
    retries: int = Constants.HTTP_RETRY_MAX
    arch: str = Constants.DEFAULT_ARCH

    @property
    def http_settings(self) -> HttpSettings:
        return HttpSettings(connect=self.timeouts.connect, total=self.timeouts.total, retries=self.retries)


def load_yaml_config(path: Optional[str]) -> Dict[str, Any]:
    """Read the ``vergate:`` section (or the whole document) from ``path``."""
    if not path:
        return {}
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to read config file {path}", context={"detail": str(exc)}) from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    section = data.get("vergate", data)
    return section if isinstance(section, dict) else {}


def _require_verified_from_env(env: Mapping[str, str]) -> Optional[bool]:
    """REQUIRE_VERIFIED_DOWNLOADS, falling back to PRODUCTION_MODE."""
    if env.get(Constants.ENV_REQUIRE_VERIFIED) is not None:
        return parse_bool(env[Constants.ENV_REQUIRE_VERIFIED], Constants.ENV_REQUIRE_VERIFIED)
    if env.get(Constants.ENV_PRODUCTION_MODE) is not None:
        return parse_bool(env[Constants.ENV_PRODUCTION_MODE], Constants.ENV_PRODUCTION_MODE)
    return None


def load_config(args: Any = None, env: Optional[Mapping[str, str]] = None) -> VerifierConfig:
    """Build a ``VerifierConfig`` from CLI args, environment and YAML."""
    env = os.environ if env is None else env
    file_cfg = load_yaml_config(getattr(args, "CONFIG", None))
    timeouts_cfg = file_cfg.get("timeouts") or {}

    keyring_root = file_cfg.get("keyring_root", Constants.DEFAULT_KEYRING_DIR)
    database_path = file_cfg.get("database_path", Constants.DEFAULT_CHECKSUMS_DB)
    require_verified = parse_bool(file_cfg.get("require_verified", False), "require_verified")
    connect = _parse_seconds(timeouts_cfg.get("connect", Constants.CONNECT_TIMEOUT), "timeouts.connect")
    total = _parse_seconds(timeouts_cfg.get("total", Constants.REQUEST_TIMEOUT), "timeouts.total")
    retries = file_cfg.get("retries", Constants.HTTP_RETRY_MAX)
    arch = file_cfg.get("arch", Constants.DEFAULT_ARCH)

    keyring_root = env.get(Constants.ENV_KEYRING_DIR) or keyring_root
    database_path = env.get(Constants.ENV_CHECKSUMS_DB) or database_path
    env_policy = _require_verified_from_env(env)
    if env_policy is not None:
        require_verified = env_policy
    if env.get(Constants.ENV_CONNECT_TIMEOUT):
        connect = _parse_seconds(env[Constants.ENV_CONNECT_TIMEOUT], Constants.ENV_CONNECT_TIMEOUT)
    if env.get(Constants.ENV_TOTAL_TIMEOUT):
        total = _parse_seconds(env[Constants.ENV_TOTAL_TIMEOUT], Constants.ENV_TOTAL_TIMEOUT)

    if getattr(args, "KEYRING_DIR", None):
        keyring_root = args.KEYRING_DIR
    if getattr(args, "CHECKSUMS_DB", None):
        database_path = args.CHECKSUMS_DB
    if getattr(args, "REQUIRE_VERIFIED", False):
        require_verified = True
    if getattr(args, "ARCH", None):
        arch = args.ARCH

    try:
        retries = max(1, int(retries))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"retries must be an integer, got '{retries}'") from exc

    timeouts = Timeouts(connect=connect, total=total)
    clamped = timeouts.clamped()
    if clamped != timeouts:
        logger.warning("Network timeouts capped at connect=%ss total=%ss", clamped.connect, clamped.total)

    return VerifierConfig(
        keyring_root=str(keyring_root),
        database_path=str(database_path),
        require_verified=require_verified,
        timeouts=clamped,
        retries=retries,
        arch=str(arch),
    )
