"""Exception hierarchy for linkfinder.

Only configuration problems are raised out of a probing session. Probe
failures, deadline expiry and cancellation are reported through
SessionDiagnostics instead.
"""


class LinkfinderError(Exception):
    """Base class for all linkfinder errors."""


class ConfigurationError(LinkfinderError, ValueError):
    """Invalid probing options (bad bounds, non-positive concurrency, ...)."""


class RegistryError(LinkfinderError):
    """A naming convention in the registry is malformed."""


class SeedError(LinkfinderError):
    """A seed file or seed argument could not be read."""
