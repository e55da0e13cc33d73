#subdomain_engine/sweeper/config.py
from dataclasses import dataclass


@dataclass(frozen=True)
class SweeperConfig:
    interval_seconds: float = 300.0
    batch_limit: int = 50

    propagation_delay_seconds: float = 1.0
    retry_delay_seconds: float = 2.0

    retry_every_cycles: int = 1

    @classmethod
    def from_settings(cls, settings) -> "SweeperConfig":
        return cls(
            interval_seconds=settings.interval_seconds,
            batch_limit=settings.batch_limit,
            propagation_delay_seconds=settings.propagation_delay_seconds,
            retry_delay_seconds=settings.retry_delay_seconds,
            retry_every_cycles=settings.retry_every_cycles,
        )
