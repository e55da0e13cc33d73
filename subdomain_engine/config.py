#subdomain_engine/config.py

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class RegistrarSettings(BaseSettings):
    """Namecheap API credentials and call timeouts."""

    model_config = SettingsConfigDict(
        env_prefix="NAMECHEAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # "memory" serves DNS from process memory (local development)
    backend: Literal["namecheap", "memory"] = "namecheap"

    api_user: str = ""
    api_key: str = ""
    username: Optional[str] = None
    client_ip: str = ""
    sandbox: bool = False

    mutation_timeout: float = 15.0
    lookup_timeout: float = 10.0


class SweeperSettings(BaseSettings):
    """Background sweeper cadence and limits."""

    model_config = SettingsConfigDict(
        env_prefix="DNS_SWEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    interval_seconds: float = 300.0
    batch_limit: int = 50

    # Pause between registrar calls inside a cycle
    propagation_delay_seconds: float = 1.0
    retry_delay_seconds: float = 2.0

    # Run write retries every Nth cycle (1 = every cycle, 0 = only when forced)
    retry_every_cycles: int = 1

    autostart: bool = True
