"""
Core configuration constants for UDP/IPv4 endpoint setup.

Single source of truth for socket tuning, multicast defaults and the session MTU.
Callers resolve these values once and pass them into ``open_udp`` through
``EndpointConfig.from_config``; nothing in the setup path reads CONFIG implicitly.
"""

import os
from ipaddress import IPv4Address
from typing import Dict, Any


# Prefix for environment variable overrides (UDPNET_MTU=1200, ...).
_ENV_PREFIX = "UDPNET_"


# Default configuration - all required keys with correct types
CONFIG = {
    # Multicast interface used for joins (ingress) and IP_MULTICAST_IF (egress).
    # Dotted quad or local interface name; None means "any interface".
    "MIFACE_ADDR": None,

    # Hop limit applied to outgoing multicast when the endpoint has no explicit TTL
    "MULTICAST_TTL": 1,

    # Advisory payload size attached to every endpoint (session variable default)
    "MTU": 1400,

    # Receive/send buffer request: 1/2 MB (8 Mb/s during 1/2 s) to absorb scheduling jitter
    "SOCKET_BUFFER_BYTES": 0x80000,

    # Attempt SO_REUSEPORT on platforms that have it
    "ENABLE_REUSE_PORT": True,

    # How to bind a multicast group address:
    #   "auto"     - per-platform adapter decides (wildcard on Windows, direct elsewhere)
    #   "direct"   - always bind the group address itself
    #   "wildcard" - always bind 0.0.0.0 and rely on the group join
    "MULTICAST_BIND": "auto",
}


# Required keys with their expected types
_REQUIRED_KEYS = {
    "MULTICAST_TTL": int,
    "MTU": int,
    "SOCKET_BUFFER_BYTES": int,
    "ENABLE_REUSE_PORT": bool,
    "MULTICAST_BIND": str,
}

# Optional keys (None allowed)
_OPTIONAL_KEYS = {
    "MIFACE_ADDR": str,
}

_MULTICAST_BIND_POLICIES = {"auto", "direct", "wildcard"}

# Keys that can be overridden by environment variables
_ENV_OVERRIDABLE = {
    "MIFACE_ADDR",
    "MULTICAST_TTL",
    "MTU",
    "SOCKET_BUFFER_BYTES",
    "ENABLE_REUSE_PORT",
    "MULTICAST_BIND",
}


def validate_config(cfg: Dict[str, Any]) -> None:
    """
    Ensure all required keys exist with correct types/ranges.
    Raise NotImplementedError("<reason>") on any violation.
    No return value on success.
    """
    missing_keys = set(_REQUIRED_KEYS.keys()) - set(cfg.keys())
    if missing_keys:
        raise NotImplementedError(f"CONFIG missing required keys: {', '.join(sorted(missing_keys))}")

    for key, expected_type in _REQUIRED_KEYS.items():
        value = cfg[key]
        # bool is an int subclass; do not accept True as a TTL
        if expected_type is int and isinstance(value, bool):
            raise NotImplementedError(f"CONFIG[{key}] must be int, got bool")
        if not isinstance(value, expected_type):
            raise NotImplementedError(f"CONFIG[{key}] must be {expected_type.__name__}, got {type(value).__name__}")

    for key, expected_type in _OPTIONAL_KEYS.items():
        value = cfg.get(key)
        if value is not None and not isinstance(value, expected_type):
            raise NotImplementedError(
                f"CONFIG[{key}] must be {expected_type.__name__} or None, got {type(value).__name__}"
            )

    if not (0 <= cfg["MULTICAST_TTL"] <= 255):
        raise NotImplementedError(f"CONFIG[MULTICAST_TTL] must be 0..255, got {cfg['MULTICAST_TTL']}")

    if cfg["MTU"] <= 0:
        raise NotImplementedError(f"CONFIG[MTU] must be positive, got {cfg['MTU']}")
    if cfg["MTU"] > 65535:
        raise NotImplementedError(f"CONFIG[MTU] must be <= 65535, got {cfg['MTU']}")

    if cfg["SOCKET_BUFFER_BYTES"] < 0:
        raise NotImplementedError(
            f"CONFIG[SOCKET_BUFFER_BYTES] must be >= 0, got {cfg['SOCKET_BUFFER_BYTES']}"
        )

    if cfg["MULTICAST_BIND"] not in _MULTICAST_BIND_POLICIES:
        raise NotImplementedError(
            f"CONFIG[MULTICAST_BIND] must be one of {', '.join(sorted(_MULTICAST_BIND_POLICIES))}, "
            f"got {cfg['MULTICAST_BIND']!r}"
        )

    # Interface names are resolved later; only reject obviously broken dotted quads here.
    miface = cfg.get("MIFACE_ADDR")
    if miface is not None:
        if not miface.strip():
            raise NotImplementedError("CONFIG[MIFACE_ADDR] must be non-empty string or None")
        if miface.replace(".", "").isdigit():
            try:
                IPv4Address(miface)
            except ValueError as exc:
                raise NotImplementedError(f"CONFIG[MIFACE_ADDR] must be a valid IPv4 address: {exc}")


def _env_type(key: str) -> type:
    if key in _REQUIRED_KEYS:
        return _REQUIRED_KEYS[key]
    return _OPTIONAL_KEYS[key]


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to config."""
    result = cfg.copy()

    for key in _ENV_OVERRIDABLE:
        env_var = _ENV_PREFIX + key
        if env_var in os.environ:
            env_value = os.environ[env_var]
            expected_type = _env_type(key)

            try:
                if key in _OPTIONAL_KEYS and env_value.strip().lower() in {"", "none"}:
                    result[key] = None
                elif expected_type == int:
                    result[key] = int(env_value, 0)
                elif expected_type == str:
                    result[key] = str(env_value)
                elif expected_type == bool:
                    lowered = str(env_value).strip().lower()
                    if lowered in {"1", "true", "yes", "on"}:
                        result[key] = True
                    elif lowered in {"0", "false", "no", "off"}:
                        result[key] = False
                    else:
                        raise ValueError(f"invalid boolean literal: {env_value}")
                else:
                    raise NotImplementedError(f"Unsupported type for env override: {expected_type}")
            except ValueError:
                raise NotImplementedError(f"Invalid {expected_type.__name__} value for {env_var}: {env_value}")

    return result


# Apply environment overrides and validate
CONFIG = _apply_env_overrides(CONFIG)
validate_config(CONFIG)
