"""Records shared by the generation, probing and classification stages"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from .utils.dates import extract_date_from_url, parse_date


class ConventionKind(Enum):
    """How a convention turns metadata into a locator."""
    DIRECT = 'direct'
    SEQUENCE = 'sequence'
    DATE_SHIFTED_SEQUENCE = 'date_shifted_sequence'


class CandidateTier(Enum):
    """Where a candidate came from, most confident first."""
    DIRECT = 0
    DERIVED = 1
    SHIFTED = 2
    MANUAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class ProbeOutcome(Enum):
    """Result of one existence check."""
    FOUND = 'found'
    NOT_FOUND = 'not_found'
    ERROR = 'error'
    TIMEOUT = 'timeout'


@dataclass(frozen=True)
class SeedItem:
    """A product already known from a listing, used to guess asset locations"""
    seed_id: str                          # Product/card code: "AB100"
    source_url: str = ''                  # Listing or product page it came from
    title: Optional[str] = None           # Free text: "花組公演 Goethe"
    observed_date: Optional[date] = None  # Opening/release date if known

    def base_date(self) -> Optional[date]:
        """Observed date, else the first date in the title, else one in the URL path."""
        return (self.observed_date or
                parse_date(self.title) or
                extract_date_from_url(self.source_url))

    def to_dict(self) -> dict:
        return {
            'id': self.seed_id,
            'source_url': self.source_url,
            'title': self.title,
            'observed_date': self.observed_date.isoformat() if self.observed_date else None,
        }


@dataclass(frozen=True)
class Candidate:
    """A guessed, unverified asset locator"""
    locator: str
    convention_kind: ConventionKind
    convention_name: str
    source_seed_id: str
    tier: CandidateTier
    sequence_index: Optional[int] = None
    date_offset_days: Optional[int] = None
    prefix_value: Optional[str] = None
    prefix_rank: int = 0   # Position of the prefix within its tier

    def sort_key(self) -> Tuple[int, int, int, int]:
        """Stable order: tier, prefix, ascending index, ascending offset."""
        return (
            self.tier.value,
            self.prefix_rank,
            self.sequence_index if self.sequence_index is not None else -1,
            self.date_offset_days if self.date_offset_days is not None else 0,
        )

    @property
    def group_key(self) -> Tuple[str, Optional[str]]:
        """Identifies the sequence a candidate belongs to within its seed."""
        return (self.source_seed_id, self.prefix_value)

    def to_dict(self) -> dict:
        return {
            'locator': self.locator,
            'convention_kind': self.convention_kind.value,
            'convention': self.convention_name,
            'seed_id': self.source_seed_id,
            'tier': self.tier.label,
            'sequence_index': self.sequence_index,
            'date_offset_days': self.date_offset_days,
            'prefix': self.prefix_value,
        }


@dataclass(frozen=True)
class VerifiedHit:
    """A candidate confirmed to resolve to a real asset"""
    candidate: Candidate
    outcome: ProbeOutcome = ProbeOutcome.FOUND

    @property
    def locator(self) -> str:
        return self.candidate.locator

    def to_dict(self) -> dict:
        result = self.candidate.to_dict()
        result['outcome'] = self.outcome.value
        return result
