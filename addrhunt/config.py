"""Runtime configuration with environment overrides."""

import os
from dataclasses import dataclass, replace
from typing import Optional

ENV_PREFIX = "ADDRHUNT_"

DEFAULT_ADDRESS_FILE = "Bitcoin_addresses_LATEST.txt"


@dataclass(frozen=True)
class SearchConfig:
    """Search tuning knobs. Picklable; passed to every worker."""
    progress_every: int = 1_000_000     # checks between progress notifications
    report_interval: float = 30.0       # seconds between stats log lines
    throttle: float = 0.01              # seconds slept after each iteration
    retry_delay: float = 0.1            # seconds to wait after a transient failure
    notify_timeout: float = 10.0        # seconds per notification request
    compressed: bool = True
    telegram_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if self.progress_every < 1:
            raise ValueError(f"progress_every must be positive, got {self.progress_every}")
        if self.report_interval <= 0:
            raise ValueError(f"report_interval must be positive, got {self.report_interval}")
        if self.throttle < 0 or self.retry_delay < 0:
            raise ValueError("throttle and retry_delay cannot be negative")

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "SearchConfig":
        """Build a config from ADDRHUNT_* variables; non-None overrides win."""
        environ = os.environ if environ is None else environ
        values = {}
        for field, var in (
            ("telegram_token", "TELEGRAM_TOKEN"),
            ("telegram_chat_id", "TELEGRAM_CHAT_ID"),
            ("log_level", "LOG_LEVEL"),
        ):
            value = environ.get(ENV_PREFIX + var)
            if value:
                values[field] = value
        config = cls(**values)
        return replace(config, **{k: v for k, v in overrides.items() if v is not None})
