"""
Config system - Session configuration from files, environment and code.

Merge order (later overrides earlier):
1. Defaults (``SessionPolicy()``)
2. ``.env`` file (``SIGIL_*`` entries only)
3. Environment variables (``SIGIL_*``)
4. Manual overrides

Nested keys use a double underscore: ``SIGIL_COOKIE__SAMESITE=strict``.
Secrets come from ``SIGIL_SECRET_KEYS`` (comma separated, newest first) or
``SIGIL_SECRET_KEY``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from .sessions.adapter import SessionAdapter
from .sessions.faults import SessionConfigFault
from .sessions.policy import SessionPolicy
from .sessions.signer import KeyRing

ENV_PREFIX = "SIGIL_"

# Never type-coerced: a numeric-looking secret is still a secret string.
_RAW_KEYS = {"secret_key", "secret_keys", "salt", "algorithm", "name", "path", "domain", "samesite"}

logger = logging.getLogger("sigil.config")


@dataclass(frozen=True)
class SessionConfig:
    """
    Resolved session configuration.

    Attributes:
        keys: Signing key ring (newest first)
        policy: Session policy
    """

    keys: KeyRing
    policy: SessionPolicy = field(default_factory=SessionPolicy)

    def __repr__(self) -> str:
        return f"SessionConfig(keys={len(self.keys)}, policy={self.policy!r})"


class ConfigLoader:
    """
    Collects ``SIGIL_*`` settings into a nested dictionary.

    Example:
        >>> loader = ConfigLoader()
        >>> loader.load_mapping({"SIGIL_MAX_SIZE": "2048", "SIGIL_COOKIE__NAME": "cart"})
        >>> loader.config_data
        {'max_size': 2048, 'cookie': {'name': 'cart'}}
    """

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    def load_env_file(self, path: str) -> None:
        """Load prefixed entries from a ``.env`` file."""
        if not os.path.exists(path):
            raise SessionConfigFault(f"env file {path!r} does not exist")
        values = {k: v for k, v in dotenv_values(path).items() if v is not None}
        self.load_mapping(values)

    def load_mapping(self, environ: Mapping[str, str]) -> None:
        """Load prefixed entries from an environment-like mapping."""
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def merge(self, overrides: Mapping[str, Any]) -> None:
        """Merge already-typed overrides (highest precedence)."""
        self._merge_dict(self.config_data, dict(overrides))

    def _set_nested(self, key: str, value: str) -> None:
        """Convert SIGIL_COOKIE__MAX_AGE to nested dict."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        leaf = parts[-1]
        current[leaf] = value if leaf in _RAW_KEYS else self._parse_value(value)

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Parse string value to appropriate type."""
        try:
            return int(value)
        except ValueError:
            pass

        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False
        if lowered in ("", "none", "null"):
            return None

        return value

    def _merge_dict(self, target: dict, source: dict) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value


def _secret_keys(data: Dict[str, Any]) -> list[str]:
    keys = data.pop("secret_keys", None)
    single = data.pop("secret_key", None)

    if keys is None and single is not None:
        keys = [single]
    if isinstance(keys, str):
        keys = keys.split(",")

    keys = [k.strip() for k in (keys or []) if k and k.strip()]
    if not keys:
        raise SessionConfigFault("no secret key configured (set SIGIL_SECRET_KEYS)")
    return keys


def load_session_config(
    env_file: Optional[str] = None,
    env_prefix: str = ENV_PREFIX,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SessionConfig:
    """
    Load session configuration from multiple sources.

    Args:
        env_file: Path to a ``.env`` file
        env_prefix: Prefix for environment variables
        overrides: Manual overrides (highest precedence)
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        SessionConfig

    Raises:
        SessionConfigFault: If no secret is configured or a value is invalid
    """
    loader = ConfigLoader(env_prefix=env_prefix)

    if env_file:
        loader.load_env_file(env_file)

    loader.load_mapping(os.environ if environ is None else environ)

    if overrides:
        loader.merge(overrides)

    data = dict(loader.config_data)
    keys = KeyRing(_secret_keys(data))

    try:
        policy = SessionPolicy.from_dict(data)
    except (TypeError, ValueError) as e:
        raise SessionConfigFault(str(e)) from e

    logger.info(
        f"Session config loaded: {len(keys)} key(s), algorithm={policy.algorithm}, "
        f"cookie={policy.cookie.name}"
    )
    return SessionConfig(keys=keys, policy=policy)


def create_adapter(
    config: Optional[SessionConfig] = None,
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> SessionAdapter:
    """
    Build a ready :class:`SessionAdapter`.

    Args:
        config: Pre-loaded config; loaded with ``kwargs`` when omitted
        logger: Optional logger for the adapter
        **kwargs: Passed to :func:`load_session_config`
    """
    if config is None:
        config = load_session_config(**kwargs)
    return SessionAdapter(config.keys, policy=config.policy, logger=logger)
