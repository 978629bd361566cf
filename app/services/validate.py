"""
Checks that run before the codec does any real work.

- validate_inputs: collect every missing/out-of-range generator field (never just the first).
- quick_validate: cheap shape check on a pasted code before a full decode.

Keep these conservative: quick_validate only rejects strings that cannot possibly
be a promocode; a string that passes can still fail `decode()`.
"""

import math
from typing import List

from app.models.schemas import PromocodeInput
from app.util.segments import count_separators
from rules.patterns import QUICK_MIN_LENGTH, QUICK_MIN_SEPARATORS, SEPARATOR


def _blank(s) -> bool:
    return s is None or not str(s).strip()


def _finite(x) -> bool:
    return x is not None and math.isfinite(x)


def validate_inputs(inputs: PromocodeInput) -> List[str]:
    """
    Return the list of problems with a generator submission (empty when usable).

    Rules:
    - brand code and product are required
    - initial offer length must be > 0
    - discount amount must be >= 0 (0 is a real discount value, not "missing")
    - period, discount type, renewal type and renewal term are required
    - a price must be available: rate plan price or override, and not negative
    - numbers must be finite (NaN and infinity are rejected like out-of-range values)
    """
    errors: List[str] = []

    if inputs.brand is None or _blank(inputs.brand.code):
        errors.append("Brand is required")

    if inputs.product is None or not inputs.product.resolved_code():
        errors.append("Product is required")

    if not _finite(inputs.initial_length) or inputs.initial_length <= 0:
        errors.append("Initial offer length must be greater than 0")

    if _blank(inputs.initial_period):
        errors.append("Initial offer period is required")

    if not _finite(inputs.discount_amount) or inputs.discount_amount < 0:
        errors.append("Discount amount must be 0 or greater")

    if _blank(inputs.discount_type):
        errors.append("Discount type is required")

    if _blank(inputs.renewal_type):
        errors.append("Renewal type is required")

    if _blank(inputs.renewal_term):
        errors.append("Renewal term is required")

    price = inputs.effective_price()
    if price is None:
        errors.append("Price is required (select a rate plan or enter override price)")
    elif not _finite(price) or price < 0:
        errors.append("Price must be 0 or greater")

    return errors


def quick_validate(code, separator: str = SEPARATOR) -> bool:
    """
    True when `code` is at least long enough and has enough separators for the
    five mandatory segments.
    """
    if not code or not isinstance(code, str):
        return False
    if len(code) < QUICK_MIN_LENGTH:
        return False
    return count_separators(code, separator or SEPARATOR) >= QUICK_MIN_SEPARATORS
