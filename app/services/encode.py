# app/services/encode.py
"""
Encoding rules:
- Validate the whole submission first; every problem is reported together
  in one `ValidationError`.

- Segments, always in this order (optional ones are dropped, never left empty):
    1. BRAND          brand code, uppercased as-is
    2. PRODUCT        product code -> promocode id -> 4-char shortcode from the name
    3. INITIAL OFFER  {length}{period}{discount}{type}, e.g. "3M199K"
    4. RENEWAL TYPE   T (Termed) / E (Evergreen)
    5. [FREETEXT]     A-Z0-9 only, capped at ruleset.freetext_max_length
    6. [CODE TYPE]    only if it is one of ruleset.code_type_set
    7. RENEWAL PLAN   {term}{price}, e.g. "M249"

- Join with ruleset.separator, then apply ruleset.casing to the WHOLE string.
  CAMEL therefore also touches letters inside the packed segments
  ("3m199k"); downstream systems see exactly that shape, so leave it.

- Example: AP-PLUS-3M199K-T-WB-M249
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from app.models.schemas import Brand, Product, PromocodeInput, Ruleset
from app.services.exceptions import ValidationError
from app.services.validate import validate_inputs
from app.util.logger import get_logger
from app.util.segments import apply_casing, round_half_up, sanitize_freetext


# ---------- segment builders ----------

def brand_segment(brand: Optional[Brand]) -> str:
    if brand is None or not brand.code:
        return ""
    return brand.code.strip().upper()


def product_segment(product: Optional[Product]) -> str:
    """Stored code, else promocode id, else a shortcode generated from the name."""
    if product is None:
        return ""
    return product.resolved_code().upper()


def initial_offer_segment(length: float, period: str, discount_amount: float, discount_type: str) -> str:
    # no delimiters inside; the ruleset regex tells the four parts apart on decode
    return f"{round_half_up(length)}{period.strip().upper()}{round_half_up(discount_amount)}{discount_type.strip().upper()}"


def renewal_type_segment(renewal_type: str) -> str:
    return renewal_type.strip().upper()


def freetext_segment(text: Optional[str], ruleset: Ruleset) -> str:
    if not text or not text.strip():
        return ""
    return sanitize_freetext(text, ruleset.freetext_max_length)


def code_type_segment(code_type: Optional[str], ruleset: Ruleset) -> str:
    if not code_type:
        return ""
    token = code_type.strip().upper()
    return token if token in ruleset.code_type_set else ""


def renewal_plan_segment(renewal_term: str, price: Any) -> str:
    try:
        value = round_half_up(float(price)) if price not in (None, "") else 0
    except (TypeError, ValueError):
        value = 0
    return f"{renewal_term.strip().upper()}{value}"


def build_segments(inputs: PromocodeInput, ruleset: Ruleset) -> List[str]:
    segments = [
        brand_segment(inputs.brand),
        product_segment(inputs.product),
        initial_offer_segment(
            inputs.initial_length,
            inputs.initial_period,
            inputs.discount_amount,
            inputs.discount_type,
        ),
        renewal_type_segment(inputs.renewal_type),
        freetext_segment(inputs.campaign_text, ruleset),
        code_type_segment(inputs.code_type, ruleset),
        renewal_plan_segment(inputs.renewal_term, inputs.effective_price()),
    ]
    return [s for s in segments if s]


def _input_error(err) -> str:
    field = ".".join(str(p) for p in err.get("loc", ())) or "input"
    return f"{field}: {err.get('msg', 'invalid value')}"


# ---------- public API ----------

def encode(
    inputs: Union[PromocodeInput, Mapping[str, Any]],
    ruleset: Ruleset,
    history=None,
) -> str:
    """
    Build the promocode for one generator submission.

    Args:
        inputs: a `PromocodeInput` (or a plain mapping with the same keys).
        ruleset: active codec configuration.
        history: optional `CodeHistory`; the generated code is appended to it.

    Raises:
        ValidationError: listing every missing or out-of-range field.
    """
    logger = get_logger()

    if not isinstance(inputs, PromocodeInput):
        try:
            inputs = PromocodeInput.model_validate(dict(inputs))
        except PydanticValidationError as e:
            problems = [_input_error(err) for err in e.errors()]
            logger.info(f"Promocode input rejected: {', '.join(problems)}")
            raise ValidationError(missing_fields=problems) from e

    problems = validate_inputs(inputs)
    if problems:
        logger.info(f"Promocode input rejected: {', '.join(problems)}")
        raise ValidationError(missing_fields=problems)

    segments = build_segments(inputs, ruleset)
    code = apply_casing(ruleset.separator.join(segments), ruleset.casing, ruleset.separator)

    logger.debug(f"Segments: {segments}")
    logger.info(f"Generated promocode: {code}")

    if history is not None:
        history.add_generated(code, inputs)

    return code
