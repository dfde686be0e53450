"""Naming conventions for storefront assets.

The storefront never lists its images. Products are photographed under a
handful of semi-regular naming schemes, and each scheme is described here as
a Convention:

- direct: one image per product code (plus an "alternate" shot)
  -> {base_url}/L/AB100.jpg, {base_url}/L/AB100_2.jpg
- sequence: numbered stills under a prefix derived from the code or date
  -> {base_url}/S/AB100-001.jpg ... {base_url}/S/AB100-040.jpg
- date-shifted sequence: the same scheme under a prefix built from a date a
  few days off the base date, used by regional/secondary-cast runs
  -> {base_url}/S/20250309-001.jpg

Pure data and string functions; no I/O.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from string import Formatter
from typing import Callable, List, Optional, Tuple

from ..errors import RegistryError
from ..models import ConventionKind, SeedItem
from ..utils.codes import alternate_code, code_stem
from ..utils.dates import shift_date, shift_offsets

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://shop.tca-pictures.net/img/goods'
DEFAULT_DATE_FORMAT = '%Y%m%d'

# Parameters each kind must be able to fill
REQUIRED_PARAMETERS = {
    ConventionKind.DIRECT: ('code',),
    ConventionKind.SEQUENCE: ('prefix', 'index'),
    ConventionKind.DATE_SHIFTED_SEQUENCE: ('prefix', 'index'),
}


@dataclass(frozen=True)
class Convention:
    """A fixed rule for building an asset locator from metadata"""
    name: str                                  # "product_photo"
    kind: ConventionKind
    locator_template: str                      # "{base_url}/S/{prefix}-{index}.jpg"
    parameters: Tuple[str, ...] = ()           # Fields the template needs
    index_width: int = 3                       # Zero padding for sequence indices
    code_transform: Optional[Callable[[str], str]] = field(default=None, compare=False)

    def template_fields(self) -> List[str]:
        return [name for _, name, _, _ in Formatter().parse(self.locator_template) if name]


def _validate(convention: Convention) -> None:
    """Raise RegistryError if a convention cannot produce locators."""
    if not isinstance(convention.kind, ConventionKind):
        raise RegistryError(f"Convention '{convention.name}' has unknown kind {convention.kind!r}")

    try:
        fields = set(convention.template_fields())
    except ValueError as e:
        raise RegistryError(f"Convention '{convention.name}' has a malformed template: {e}") from e

    missing = [p for p in convention.parameters if p not in fields]
    if missing:
        raise RegistryError(
            f"Convention '{convention.name}' declares {missing} but its template does not use them"
        )

    undeclared = fields - set(convention.parameters) - {'base_url'}
    if undeclared:
        raise RegistryError(
            f"Convention '{convention.name}' template uses undeclared fields {sorted(undeclared)}"
        )

    required = [p for p in REQUIRED_PARAMETERS[convention.kind] if p not in convention.parameters]
    if required:
        raise RegistryError(
            f"Convention '{convention.name}' ({convention.kind.value}) must declare {required}"
        )

    if convention.kind != ConventionKind.DIRECT and convention.index_width < 1:
        raise RegistryError(f"Convention '{convention.name}' needs a positive index width")


class ConventionRegistry:
    """Table of known naming conventions plus the prefix heuristics that feed them."""

    def __init__(self, conventions: List[Convention], base_url: str = DEFAULT_BASE_URL,
                 date_format: str = DEFAULT_DATE_FORMAT):
        names = set()
        for convention in conventions:
            _validate(convention)
            if convention.name in names:
                raise RegistryError(f"Duplicate convention name '{convention.name}'")
            names.add(convention.name)

        self.conventions: Tuple[Convention, ...] = tuple(conventions)
        self.base_url = base_url.rstrip('/')
        self.date_format = date_format

    def __repr__(self) -> str:
        return f"ConventionRegistry({[c.name for c in self.conventions]}, base_url={self.base_url!r})"

    @property
    def kinds(self) -> frozenset:
        return frozenset(c.kind for c in self.conventions)

    def of_kind(self, kind: ConventionKind) -> List[Convention]:
        return [c for c in self.conventions if c.kind == kind]

    def get(self, name: str) -> Convention:
        for convention in self.conventions:
            if convention.name == name:
                return convention
        raise KeyError(name)

    # ------------------------------------------------------------------
    # Locator construction
    # ------------------------------------------------------------------

    def direct_locator(self, convention: Convention, code: str) -> str:
        value = convention.code_transform(code) if convention.code_transform else code
        return convention.locator_template.format(base_url=self.base_url, code=value)

    def direct(self, code: str) -> List[Tuple[Convention, str]]:
        """All direct locators for a product code, in registry order."""
        return [(c, self.direct_locator(c, code)) for c in self.of_kind(ConventionKind.DIRECT)]

    def sequence(self, prefix: str, index: int, convention: Optional[Convention] = None) -> str:
        """Locator of one numbered asset under a prefix."""
        if convention is None:
            convention = self.of_kind(ConventionKind.SEQUENCE)[0]
        return convention.locator_template.format(
            base_url=self.base_url,
            prefix=prefix,
            index=str(index).zfill(convention.index_width),
        )

    # ------------------------------------------------------------------
    # Prefix heuristics
    # ------------------------------------------------------------------

    def base_date(self, seed: SeedItem) -> Optional[date]:
        """Best guess at the date a seed's assets are keyed on."""
        return seed.base_date()

    def format_date(self, value: date) -> str:
        return value.strftime(self.date_format)

    def derive_prefixes(self, seed: SeedItem) -> List[str]:
        """
        Auto-derived sequence prefixes for a seed, most likely first.

        - the product code itself ("AB100")
        - the code stem when the code carries a variant suffix ("AB100-2" -> "AB100")
        - the base date ("20250308")
        """
        prefixes = []
        if seed.seed_id:
            prefixes.append(seed.seed_id)
            stem = code_stem(seed.seed_id)
            if stem:
                prefixes.append(stem)

        base = self.base_date(seed)
        if base:
            prefixes.append(self.format_date(base))

        # Dedupe preserving order
        seen = set()
        unique = []
        for p in prefixes:
            if p not in seen:
                seen.add(p)
                unique.append(p)
        return unique

    def shifted_prefixes(self, seed: SeedItem, window: int) -> List[Tuple[str, int]]:
        """
        Date-shifted prefix variants as (prefix, offset_days).

        Alternate productions reuse the naming scheme keyed on their own
        opening date, a few days either side of the base date.
        """
        base = self.base_date(seed)
        if not base or window <= 0:
            return []

        derived = set(self.derive_prefixes(seed))
        variants = []
        for offset in shift_offsets(window):
            prefix = self.format_date(shift_date(base, offset))
            if prefix not in derived:
                variants.append((prefix, offset))
        return variants


def default_registry(base_url: Optional[str] = None) -> ConventionRegistry:
    """Registry of the conventions observed on the storefront."""
    return ConventionRegistry(
        [
            Convention(
                name='product_photo',
                kind=ConventionKind.DIRECT,
                locator_template='{base_url}/L/{code}.jpg',
                parameters=('code',),
            ),
            Convention(
                name='alternate_photo',
                kind=ConventionKind.DIRECT,
                locator_template='{base_url}/L/{code}.jpg',
                parameters=('code',),
                code_transform=alternate_code,
            ),
            Convention(
                name='still_sequence',
                kind=ConventionKind.SEQUENCE,
                locator_template='{base_url}/S/{prefix}-{index}.jpg',
                parameters=('prefix', 'index'),
                index_width=3,
            ),
            Convention(
                name='still_sequence_shifted',
                kind=ConventionKind.DATE_SHIFTED_SEQUENCE,
                locator_template='{base_url}/S/{prefix}-{index}.jpg',
                parameters=('prefix', 'index'),
                index_width=3,
            ),
        ],
        base_url=base_url or DEFAULT_BASE_URL,
    )
