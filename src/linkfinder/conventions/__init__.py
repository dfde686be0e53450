"""Asset naming conventions and troupe heuristics"""
from .registry import (
    Convention,
    ConventionRegistry,
    default_registry,
    DEFAULT_BASE_URL,
)
from .troupe import Troupe, infer_troupe, troupe_from_token
