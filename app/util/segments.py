"""
Segment helpers (pure string checks/transforms).

- apply_casing(text, casing, separator): final casing pass over a joined code.
- sanitize_freetext(text, max_length): uppercase, A-Z0-9 only, capped.
- product_shortcode(name): first 4 alphanumerics of a product name, uppercased.
- round_half_up(x): integer rounding that sends .5 up (2.5 -> 3).
- count_separators(code, separator): how many times the separator appears.

Keeps string mangling out of the encoder/decoder.
"""

import math
import re
from typing import Optional

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_NON_UPPER_ALNUM = re.compile(r"[^A-Z0-9]")


def apply_casing(text: str, casing: Optional[str], separator: str = "-") -> str:
    casing = (casing or "").upper()
    if casing == "LOWER" or casing == "KEBAB":
        return text.lower()
    if casing == "CAMEL":
        # lowercase everything, then capitalize the letter right after each separator
        pat = re.compile(re.escape(separator) + r"([a-z])")
        return pat.sub(lambda m: separator + m.group(1).upper(), text.lower())
    return text.upper()


def sanitize_freetext(text: Optional[str], max_length: int) -> str:
    if not text:
        return ""
    cleaned = _NON_UPPER_ALNUM.sub("", text.upper())
    return cleaned[:max_length]


def product_shortcode(name: Optional[str]) -> str:
    if not name:
        return ""
    return _NON_ALNUM.sub("", name)[:4].upper()


def round_half_up(x: float) -> int:
    return int(math.floor(float(x) + 0.5))


def count_separators(code: str, separator: str) -> int:
    return code.count(separator) if separator else 0
