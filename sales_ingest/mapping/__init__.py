"""Row mapping: alias resolution, total coercion and canonical hashing."""

from .canonical import RowMappingError, canonical_key, canonicalize, row_hash
from .coerce import to_date, to_number, to_trimmed_str_or_none
from .resolver import MISSING, resolve

__all__ = [
    "MISSING",
    "RowMappingError",
    "canonical_key",
    "canonicalize",
    "resolve",
    "row_hash",
    "to_date",
    "to_number",
    "to_trimmed_str_or_none",
]
