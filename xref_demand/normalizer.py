"""
Canonical matching keys for part numbers.

The same function is applied to catalog cells and to every demand row, so
two part numbers match only when their keys are equal byte for byte.
"""

import re
from functools import lru_cache

import pandas as pd

from . import settings


@lru_cache(maxsize=None)
def _strip_pattern(strip_chars: str) -> re.Pattern:
    return re.compile("[" + re.escape(strip_chars) + "]")


def normalize(raw, strip_chars: str = settings.STRIP_CHARS) -> str:
    """
    Turns a raw part number into its canonical key: every character in
    `strip_chars` removed, the rest uppercased. Never fails; missing values
    give an empty key.

    >>> normalize("1AS-BJ00132")
    '1ASBJ00132'
    >>> normalize("TRQ.123 / A")
    'TRQ123A'
    """
    if raw is None or (not isinstance(raw, str) and pd.isna(raw)):
        return ""
    text = str(raw)
    if strip_chars:
        text = _strip_pattern(strip_chars).sub("", text)
    return text.upper()


def normalize_series(values: pd.Series, strip_chars: str = settings.STRIP_CHARS) -> pd.Series:
    """Vectorized `normalize` for a whole column. Missing cells become ''."""
    keys = values.astype("string").fillna("")
    if strip_chars:
        keys = keys.str.replace(_strip_pattern(strip_chars).pattern, "", regex=True)
    return keys.str.upper().astype(object)
