"""Runtime tuning read from the environment.

Retry windows are long by default (IAM propagation can take minutes);
the environment variables below let operators shorten or extend them
without code changes. Invalid values fall back to the defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from lftagops.core.retry import (
    DELETE_TIMEOUT,
    PROPAGATION_TIMEOUT,
    RetryPolicy,
    deletion_policy,
    propagation_policy,
)

logger = logging.getLogger(__name__)

PROPAGATION_TIMEOUT_ENV = "LFTAGOPS_PROPAGATION_TIMEOUT"
DELETE_TIMEOUT_ENV = "LFTAGOPS_DELETE_TIMEOUT"
MAX_ATTEMPTS_ENV = "LFTAGOPS_MAX_ATTEMPTS"
MAX_BACKOFF_ENV = "LFTAGOPS_MAX_BACKOFF"
MAX_VALUES_PER_KEY_ENV = "LFTAGOPS_MAX_VALUES_PER_KEY"

_DEFAULT_MAX_BACKOFF = 10.0


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(float(raw), 0.0)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _optional_int_env(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return None
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    """Reconciler tuning knobs."""

    propagation_timeout: float = PROPAGATION_TIMEOUT
    delete_timeout: float = DELETE_TIMEOUT
    max_attempts: int | None = None
    max_backoff: float = _DEFAULT_MAX_BACKOFF
    max_values_per_key: int | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables (``os.environ`` by default)."""
        env = os.environ if env is None else env
        return cls(
            propagation_timeout=_float_env(
                env, PROPAGATION_TIMEOUT_ENV, PROPAGATION_TIMEOUT
            ),
            delete_timeout=_float_env(env, DELETE_TIMEOUT_ENV, DELETE_TIMEOUT),
            max_attempts=_optional_int_env(env, MAX_ATTEMPTS_ENV),
            max_backoff=_float_env(env, MAX_BACKOFF_ENV, _DEFAULT_MAX_BACKOFF),
            max_values_per_key=_optional_int_env(env, MAX_VALUES_PER_KEY_ENV),
        )

    def propagation_policy(self) -> RetryPolicy:
        return propagation_policy(
            self.propagation_timeout,
            max_delay=self.max_backoff,
            max_attempts=self.max_attempts,
        )

    def deletion_policy(self) -> RetryPolicy:
        return deletion_policy(
            self.delete_timeout,
            max_delay=self.max_backoff,
            max_attempts=self.max_attempts,
        )
