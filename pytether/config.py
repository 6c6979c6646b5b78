"""
Synchronization policy for the window registry.

The heartbeat interval and liveness multiplier trade storage chatter
against how quickly a closed window disappears from every other window.
Defaults can be overridden through environment variables (PYTETHER_*)
or the command line.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

# Shared store directory (one JSON file per store key)
STORE_DIR = Path.home() / ".pytether" / "store"
STORE_KEY = "windows"

ENV_PREFIX = "PYTETHER_"


@dataclass(frozen=True)
class SyncConfig:
    heartbeat_interval: float = 1.0  # seconds between forced republications
    liveness_multiplier: float = 4.0  # timeout = heartbeat * multiplier
    shape_epsilon: float = 0.5  # pixels
    poll_interval: float = 0.25  # file store fallback poll (seconds)
    store_dir: Path = field(default=STORE_DIR)
    store_key: str = STORE_KEY

    @property
    def liveness_timeout(self):
        """Seconds without a heartbeat before an entry is dropped."""
        return self.heartbeat_interval * self.liveness_multiplier

    def validate(self):
        if self.heartbeat_interval <= 0:
            raise ValueError(
                f"heartbeat_interval must be positive, got {self.heartbeat_interval}"
            )
        if self.liveness_multiplier < 2:
            raise ValueError(
                f"liveness_multiplier must be at least 2, got {self.liveness_multiplier}"
            )
        if self.shape_epsilon < 0:
            raise ValueError(f"shape_epsilon must be >= 0, got {self.shape_epsilon}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if not self.store_key:
            raise ValueError("store_key must not be empty")
        return self

    def with_overrides(self, **kwargs):
        """Return a copy with the given non-None fields replaced."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        if "store_dir" in changes:
            changes["store_dir"] = Path(changes["store_dir"]).expanduser()
        return replace(self, **changes).validate()

    @classmethod
    def from_env(cls, environ=None):
        """
        Build a config from PYTETHER_* environment variables.

        Recognized: PYTETHER_HEARTBEAT, PYTETHER_LIVENESS, PYTETHER_EPSILON,
        PYTETHER_POLL, PYTETHER_STORE_DIR, PYTETHER_STORE_KEY.
        """
        env = os.environ if environ is None else environ
        floats = {
            "HEARTBEAT": "heartbeat_interval",
            "LIVENESS": "liveness_multiplier",
            "EPSILON": "shape_epsilon",
            "POLL": "poll_interval",
        }
        kwargs = {}
        for suffix, name in floats.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is None or raw == "":
                continue
            try:
                kwargs[name] = float(raw)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}{suffix} must be a number, got {raw!r}"
                ) from None

        if env.get(ENV_PREFIX + "STORE_DIR"):
            kwargs["store_dir"] = env[ENV_PREFIX + "STORE_DIR"]
        if env.get(ENV_PREFIX + "STORE_KEY"):
            kwargs["store_key"] = env[ENV_PREFIX + "STORE_KEY"]

        return cls().with_overrides(**kwargs)
