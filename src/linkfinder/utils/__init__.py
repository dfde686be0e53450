"""Utility functions"""
from .dates import (
    parse_date, parse_date_loose, extract_date_from_url, extract_year,
    shift_date, shift_offsets,
)
from .codes import normalize_code, code_stem, alternate_code, code_number, sanitize_prefix
