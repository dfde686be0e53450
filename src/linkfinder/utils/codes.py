"""Product code normalization"""
import re
from typing import Optional

# Separators that split a code into stem and variant: "AB100-2", "AB100_B"
CODE_SEPARATORS = r'[-_]'


def normalize_code(code: str) -> str:
    """
    Clean up a product code as it appears in a listing.

    - Strip surrounding whitespace and slashes
    - Drop a leading "g" added by the storefront link scheme (/shop/g/gAB100/)
      when what follows is a complete code
    - Upper-case letters (codes are case-insensitive on the storefront)
    """
    if not code:
        return ''

    result = code.strip().strip('/')

    if re.fullmatch(r'g[A-Za-z0-9][A-Za-z0-9_\-]*', result) and re.search(r'\d', result):
        result = result[1:]

    return result.upper()


def code_stem(code: str) -> Optional[str]:
    """
    Return the part of a code before its first separator.

    Example: code_stem("AB100-2") -> "AB100"; code_stem("AB100") -> None
    """
    if not code:
        return None
    parts = re.split(CODE_SEPARATORS, code, maxsplit=1)
    if len(parts) == 2 and parts[0]:
        return parts[0]
    return None


def alternate_code(code: str) -> str:
    """
    Derive the code of the alternate photo for a product.

    The storefront publishes a second photo for some products under the same
    code with a "_2" suffix.
    """
    return f"{code}_2"


def code_number(code: Optional[str]) -> Optional[int]:
    """
    Extract the trailing number of a code, used as a recency key.

    Codes are issued monotonically, so a larger number means a newer product.

    Example: code_number("AB100") -> 100; code_number("GOODS") -> None
    """
    if not code:
        return None
    match = re.search(r'(\d+)(?!.*\d)', code)
    if match:
        return int(match.group(1))
    return None


def sanitize_prefix(prefix: str) -> str:
    """
    Clean a user-typed prefix so it can be dropped into a locator template.

    Removes whitespace and any path separators; keeps case.
    """
    if not prefix:
        return ''
    result = re.sub(r'\s+', '', prefix)
    result = result.strip('/').replace('/', '')
    return result
