"""Run-loop configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from stratum.jobs import DEFAULT_CAPACITY

__all__ = ["CompositorConfig"]

ENV_PREFIX = "STRATUM_"


@dataclass
class CompositorConfig:
    """Tunables of the compositor loop.

    ``tick_interval`` is in seconds; ``0`` disables periodic ticks.
    """

    tick_interval: float = 3.0
    job_channel_capacity: int = DEFAULT_CAPACITY
    mouse_capture: bool = True

    def __post_init__(self) -> None:
        if self.tick_interval < 0:
            raise ValueError(f"tick_interval must be >= 0, got {self.tick_interval}")
        if self.job_channel_capacity < 1:
            raise ValueError(
                f"job_channel_capacity must be >= 1, got {self.job_channel_capacity}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CompositorConfig:
        """Build a config, overriding defaults from ``STRATUM_*`` variables."""
        env = os.environ if environ is None else environ
        config = cls()

        tick = env.get(f"{ENV_PREFIX}TICK_INTERVAL")
        if tick:
            config.tick_interval = float(tick)
        capacity = env.get(f"{ENV_PREFIX}JOB_CHANNEL_CAPACITY")
        if capacity:
            config.job_channel_capacity = int(capacity)
        mouse = env.get(f"{ENV_PREFIX}MOUSE_CAPTURE")
        if mouse is not None:
            config.mouse_capture = mouse != "0"

        config.__post_init__()
        return config
