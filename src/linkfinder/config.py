"""Probing session options"""
import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError
from .utils.codes import sanitize_prefix

# Load .env file if present
load_dotenv()

# Widest index range a single prefix may be scanned over
MAX_INDEX_SPAN = 1000

# Sequence ranges observed per asset class
ASSET_CLASS_RANGES = {
    'card': (1, 40),      # Stage photo cards
    'program': (1, 200),  # Programme page scans
}

DEFAULT_USER_AGENT = 'linkfinder/1.0 (+asset discovery)'


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name, '').strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name, '').strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


def get_base_url() -> Optional[str]:
    """Storefront image root override, if configured."""
    return os.getenv('LINKFINDER_BASE_URL') or None


def get_user_agent() -> str:
    return os.getenv('LINKFINDER_USER_AGENT') or DEFAULT_USER_AGENT


@dataclass(frozen=True)
class ProbeOptions:
    """Per-call options for one probing session"""
    index_min: int = 1                       # First sequence index (inclusive)
    index_max: int = 40                      # Last sequence index (inclusive)
    extra_prefixes: Tuple[str, ...] = ()     # Operator hints for unknown schemes
    max_candidates: int = 500                # Cap on locators per seed
    shift_window: int = 2                    # Date-shift variants: +/-1..N days
    concurrency: int = 8                     # Worker pool size
    per_request_timeout: float = 10.0        # Seconds per existence check
    overall_deadline: Optional[float] = None  # Seconds for the whole session
    min_interval: float = 0.0                # Delay before each check, per worker
    stop_after_misses: Optional[int] = None  # Consecutive misses ending a sequence

    @property
    def index_range(self) -> Tuple[int, int]:
        return (self.index_min, self.index_max)

    def validate(self) -> 'ProbeOptions':
        """Raise ConfigurationError if any option is out of bounds."""
        if self.index_min < 0 or self.index_max < 0:
            raise ConfigurationError(
                f"Sequence bounds must be non-negative, got [{self.index_min}, {self.index_max}]"
            )
        if self.index_min > self.index_max:
            raise ConfigurationError(
                f"Sequence range is empty: min {self.index_min} > max {self.index_max}"
            )
        if self.index_max - self.index_min + 1 > MAX_INDEX_SPAN:
            raise ConfigurationError(
                f"Sequence range [{self.index_min}, {self.index_max}] spans more than "
                f"{MAX_INDEX_SPAN} indices"
            )
        if self.concurrency < 1:
            raise ConfigurationError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.max_candidates < 1:
            raise ConfigurationError(f"max_candidates must be positive, got {self.max_candidates}")
        if self.shift_window < 0:
            raise ConfigurationError(f"shift_window must be non-negative, got {self.shift_window}")
        if self.per_request_timeout <= 0:
            raise ConfigurationError(
                f"per_request_timeout must be positive, got {self.per_request_timeout}"
            )
        if self.overall_deadline is not None and self.overall_deadline <= 0:
            raise ConfigurationError(
                f"overall_deadline must be positive, got {self.overall_deadline}"
            )
        if self.min_interval < 0:
            raise ConfigurationError(f"min_interval must be non-negative, got {self.min_interval}")
        if self.stop_after_misses is not None and self.stop_after_misses < 1:
            raise ConfigurationError(
                f"stop_after_misses must be at least 1, got {self.stop_after_misses}"
            )
        return self

    def with_prefixes(self, prefixes) -> 'ProbeOptions':
        """Copy with operator prefixes cleaned and appended."""
        cleaned = list(self.extra_prefixes)
        for p in prefixes or ():
            value = sanitize_prefix(p)
            if value and value not in cleaned:
                cleaned.append(value)
        return replace(self, extra_prefixes=tuple(cleaned))

    def for_asset_class(self, asset_class: str) -> 'ProbeOptions':
        """Copy with the index range preset for an asset class."""
        if asset_class not in ASSET_CLASS_RANGES:
            raise ConfigurationError(
                f"Unknown asset class '{asset_class}' (expected one of {sorted(ASSET_CLASS_RANGES)})"
            )
        index_min, index_max = ASSET_CLASS_RANGES[asset_class]
        return replace(self, index_min=index_min, index_max=index_max)

    def to_dict(self) -> dict:
        return {
            'index_min': self.index_min,
            'index_max': self.index_max,
            'extra_prefixes': list(self.extra_prefixes),
            'max_candidates': self.max_candidates,
            'shift_window': self.shift_window,
            'concurrency': self.concurrency,
            'per_request_timeout': self.per_request_timeout,
            'overall_deadline': self.overall_deadline,
            'min_interval': self.min_interval,
            'stop_after_misses': self.stop_after_misses,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProbeOptions':
        defaults = cls()
        return cls(
            index_min=data.get('index_min', defaults.index_min),
            index_max=data.get('index_max', defaults.index_max),
            extra_prefixes=tuple(data.get('extra_prefixes', ())),
            max_candidates=data.get('max_candidates', defaults.max_candidates),
            shift_window=data.get('shift_window', defaults.shift_window),
            concurrency=data.get('concurrency', defaults.concurrency),
            per_request_timeout=data.get('per_request_timeout', defaults.per_request_timeout),
            overall_deadline=data.get('overall_deadline'),
            min_interval=data.get('min_interval', defaults.min_interval),
            stop_after_misses=data.get('stop_after_misses'),
        )

    @classmethod
    def from_env(cls) -> 'ProbeOptions':
        """Defaults overridden by LINKFINDER_* environment variables."""
        defaults = cls()
        return cls(
            index_min=_env_int('LINKFINDER_INDEX_MIN', defaults.index_min),
            index_max=_env_int('LINKFINDER_INDEX_MAX', defaults.index_max),
            max_candidates=_env_int('LINKFINDER_MAX_CANDIDATES', defaults.max_candidates),
            shift_window=_env_int('LINKFINDER_SHIFT_WINDOW', defaults.shift_window),
            concurrency=_env_int('LINKFINDER_CONCURRENCY', defaults.concurrency),
            per_request_timeout=_env_float('LINKFINDER_TIMEOUT', defaults.per_request_timeout),
            overall_deadline=_env_float('LINKFINDER_DEADLINE', None),
            min_interval=_env_float('LINKFINDER_MIN_INTERVAL', defaults.min_interval),
            stop_after_misses=_env_int('LINKFINDER_STOP_AFTER_MISSES', None),
        )
