"""
Engine configuration for Marketgate.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from marketgate.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_FEATURE_DURATION_DAYS = 30

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def utc_clock() -> datetime:
    """Default clock: current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass
class EngineConfig:
    """
    Configuration for the lifecycle engine.

    Attributes:
        feature_duration_days: Length of an owner-purchased feature period.
        allow_trial_listings: Whether a trial subscription satisfies the
            directory-listing create and publish rows.
        clock: Callable returning the current time. Only consulted when a
            caller does not pass ``now`` explicitly.

    Example:
        >>> config = EngineConfig(feature_duration_days=14)
        >>> engine = LifecycleEngine(config=config)
    """

    feature_duration_days: int = DEFAULT_FEATURE_DURATION_DAYS
    allow_trial_listings: bool = True
    clock: Callable[[], datetime] = field(default=utc_clock)

    def __post_init__(self) -> None:
        if (
            isinstance(self.feature_duration_days, bool)
            or not isinstance(self.feature_duration_days, int)
            or self.feature_duration_days <= 0
        ):
            raise ConfigurationError(
                "feature_duration_days",
                expected="a positive integer",
                received=self.feature_duration_days,
            )
        if not callable(self.clock):
            raise ConfigurationError("clock", expected="a callable", received=self.clock)

    def now(self) -> datetime:
        return self.clock()

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """
        Build a configuration from environment variables.

        Reads ``MARKETGATE_FEATURE_DURATION_DAYS`` and
        ``MARKETGATE_ALLOW_TRIAL_LISTINGS``. Unset variables keep defaults.

        Raises:
            ConfigurationError: If a variable holds an unparseable value.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        raw_days = env.get("MARKETGATE_FEATURE_DURATION_DAYS")
        if raw_days is not None:
            try:
                kwargs["feature_duration_days"] = int(raw_days)
            except ValueError:
                raise ConfigurationError(
                    "MARKETGATE_FEATURE_DURATION_DAYS",
                    expected="an integer",
                    received=raw_days,
                ) from None

        raw_trial = env.get("MARKETGATE_ALLOW_TRIAL_LISTINGS")
        if raw_trial is not None:
            normalized = raw_trial.strip().lower()
            if normalized in _TRUE_VALUES:
                kwargs["allow_trial_listings"] = True
            elif normalized in _FALSE_VALUES:
                kwargs["allow_trial_listings"] = False
            else:
                raise ConfigurationError(
                    "MARKETGATE_ALLOW_TRIAL_LISTINGS",
                    expected="a boolean flag",
                    received=raw_trial,
                )

        config = cls(**kwargs)  # type: ignore[arg-type]
        logger.debug(f"Loaded engine config from environment: {config}")
        return config
