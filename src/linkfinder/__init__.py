"""linkfinder - guess, verify and catalog storefront media assets"""
from .config import ProbeOptions
from .errors import ConfigurationError, LinkfinderError, RegistryError, SeedError
from .models import (
    Candidate, CandidateTier, ConventionKind, ProbeOutcome, SeedItem, VerifiedHit,
)
from .session import run_session, run_seed

__version__ = '1.0.0'
