"""
Configuration for chijimi.

Defaults live on :class:`Settings`; ``Settings.from_env()`` overlays
``CHIJIMI_*`` environment variables and the CLI overlays its flags on top.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# Defaults
# ============================================================================

DEFAULT_SOURCE_URL = (
    "https://raw.githubusercontent.com/WorksApplications/SudachiDict/"
    "refs/heads/develop/src/main/text/synonyms.txt"
)

# GPT-4o encoding
DEFAULT_ENCODING = "o200k_base"

# Relative token reduction required in strict mode
STRICT_MIN_REDUCTION = 0.2

ENV_PREFIX = "CHIJIMI_"


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings.

    Attributes:
        source_url: Where the raw synonyms.txt is downloaded from
        encoding: tiktoken encoding used for token counting
        split_mode: Sudachi split mode (A, B or C)
        min_reduction: Minimum relative token reduction per substitution.
            0.0 accepts any reduction, 0.2 is the strict mode.
        batch_size: Entries per store batch
        max_retries: Retries per failed store batch
        retry_delay: Base delay in seconds between batch retries
        request_timeout: HTTP timeout in seconds for the source download
        max_age_hours: Age after which a stored dictionary is stale
    """
    source_url: str = DEFAULT_SOURCE_URL
    encoding: str = DEFAULT_ENCODING
    split_mode: str = "C"
    min_reduction: float = 0.0
    batch_size: int = 500
    max_retries: int = 3
    retry_delay: float = 1.0
    request_timeout: float = 60.0
    max_age_hours: float = 24.0

    @property
    def strict(self) -> bool:
        return self.min_reduction > 0

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with every non-None keyword applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from ``CHIJIMI_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, cast: Callable[[str], T], default: T) -> T:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={raw!r}")
                return default

        return cls(
            source_url=read("SOURCE_URL", str, defaults.source_url),
            encoding=read("ENCODING", str, defaults.encoding),
            split_mode=read("SPLIT_MODE", str.upper, defaults.split_mode),
            min_reduction=read("MIN_REDUCTION", float, defaults.min_reduction),
            batch_size=read("BATCH_SIZE", int, defaults.batch_size),
            max_retries=read("MAX_RETRIES", int, defaults.max_retries),
            retry_delay=read("RETRY_DELAY", float, defaults.retry_delay),
            request_timeout=read("REQUEST_TIMEOUT", float, defaults.request_timeout),
            max_age_hours=read("MAX_AGE_HOURS", float, defaults.max_age_hours),
        )
