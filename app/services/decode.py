# app/services/decode.py
"""
Decoding rules:
- Split on ruleset.separator. Fewer than 5 segments can't be a promocode
  (brand, product, initial offer, renewal type and renewal plan are mandatory).

- Fixed ends, loose middle:
    [0] BRAND          -> "Name (CODE)" via the brand lookup, raw code if unknown
    [1] PRODUCT        -> same, via the product lookup
    [2] INITIAL OFFER  -> must fully match ruleset.initial_offer_pattern
    [3] RENEWAL TYPE   -> T / E (raw letter if unknown)
    [-1] RENEWAL PLAN  -> must fully match ruleset.renewal_plan_pattern; anchored to
                          the END because the number of optional segments varies
    [4:-1] optional    -> a code-type token (case-insensitive) or freetext

- Empty middle segments (doubled separator) are skipped. Only the FIRST
  non-empty freetext-looking middle segment is kept as the campaign text;
  later ones are dropped without complaint. Old codes in the wild rely on that,
  so don't turn it into a rejection.

- decode() never raises. Shape problems come back as is_valid=False + error, and
  lookups that blow up just fall back to the raw code.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from app.models.schemas import HumanReadable, ParsedFields, ParsedPromocode, Ruleset
from app.services.exceptions import FormatError
from app.util.logger import get_logger
from rules.patterns import CODE_TYPE_LABELS, MIN_SEGMENTS, PRICE_SUFFIX, RENEWAL_TYPES

Lookup = Callable[[str], Optional[str]]


# ---------- segment parsers ----------

def parse_initial_offer(segment: str, ruleset: Ruleset) -> Dict[str, Any]:
    m = ruleset.initial_offer_regex().fullmatch(segment)
    if not m:
        raise FormatError(f"Invalid initial offer format: {segment}")
    try:
        length, discount = int(m.group(1)), int(m.group(3))
    except (TypeError, ValueError) as e:
        raise FormatError(f"Invalid initial offer format: {segment}") from e
    return {
        "length": length,
        "period": m.group(2),
        "discount": discount,
        "type": m.group(4),
    }


def parse_renewal_plan(segment: str, ruleset: Ruleset) -> Optional[Dict[str, Any]]:
    m = ruleset.renewal_plan_regex().fullmatch(segment)
    if not m:
        return None
    try:
        return {"term": m.group(1), "price": int(m.group(2))}
    except (TypeError, ValueError):
        return None


def format_initial_offer(offer: Dict[str, Any], ruleset: Ruleset) -> str:
    period = ruleset.period_map.get(offer["period"], offer["period"])
    discount_type = ruleset.price_type_map.get(offer["type"], offer["type"])
    return f"{offer['length']} {period} - {offer['discount']} {discount_type} discount"


def format_renewal_plan(plan: Dict[str, Any], ruleset: Ruleset) -> str:
    term = ruleset.term_map.get(plan["term"], plan["term"])
    return f"{term} - {plan['price']} {PRICE_SUFFIX}"


def decode_renewal_type(letter: str) -> str:
    return RENEWAL_TYPES.get(letter, letter)


def decode_code_type(token: str) -> str:
    return CODE_TYPE_LABELS.get(token.upper(), token)


def _resolve(code: str, lookup: Optional[Lookup], kind: str) -> str:
    """Display value for a brand/product code; never fails."""
    if lookup is None:
        return code
    try:
        name = lookup(code)
    except Exception as e:
        get_logger().warning(f"Failed to resolve {kind} {code!r}: {e}")
        return code
    return f"{name} ({code})" if name else code


def build_summary(hr: HumanReadable) -> str:
    parts: List[str] = []
    if hr.brand:
        parts.append(f"Brand: {hr.brand}")
    if hr.product:
        parts.append(f"Product: {hr.product}")
    if hr.initial_offer:
        parts.append(f"Initial Offer: {hr.initial_offer}")
    if hr.renewal_type:
        parts.append(f"Renewal: {hr.renewal_type}")
    if hr.campaign_text:
        parts.append(f"Campaign: {hr.campaign_text}")
    if hr.code_type:
        parts.append(f"Type: {hr.code_type}")
    if hr.renewal_plan:
        parts.append(f"Renewal Plan: {hr.renewal_plan}")
    return " | ".join(parts)


# ---------- public API ----------

def decode(
    code: Any,
    ruleset: Ruleset,
    resolve_brand: Optional[Lookup] = None,
    resolve_product: Optional[Lookup] = None,
    history=None,
) -> ParsedPromocode:
    """
    Take a promocode string apart.

    Args:
        code: the pasted string.
        ruleset: active codec configuration.
        resolve_brand / resolve_product: code -> display name (or None when unknown).
        history: optional `CodeHistory`; the result is appended to it.

    Returns:
        ParsedPromocode: always; check `is_valid` / `error`.
    """
    result = _decode(code, ruleset, resolve_brand, resolve_product)
    if history is not None and isinstance(code, str) and code:
        history.add_parsed(result)
    return result


def _decode(
    code: Any,
    ruleset: Ruleset,
    resolve_brand: Optional[Lookup],
    resolve_product: Optional[Lookup],
) -> ParsedPromocode:
    logger = get_logger()

    if not code or not isinstance(code, str):
        return ParsedPromocode.failure(code, "Invalid promocode: empty or not a string")

    segments = code.split(ruleset.separator)
    if len(segments) < MIN_SEGMENTS:
        logger.info(f"Rejected promocode {code!r}: {len(segments)} segments")
        return ParsedPromocode.failure(code, "Invalid promocode format: insufficient segments", segments)

    parsed = ParsedFields()
    hr = HumanReadable()

    try:
        parsed.brand = segments[0]
        hr.brand = _resolve(segments[0], resolve_brand, "brand")

        parsed.product = segments[1]
        hr.product = _resolve(segments[1], resolve_product, "product")

        offer = parse_initial_offer(segments[2], ruleset)
        parsed.initial_offer = segments[2]
        parsed.initial_length = offer["length"]
        parsed.initial_period = offer["period"]
        parsed.discount_amount = offer["discount"]
        parsed.discount_type = offer["type"]
        hr.initial_offer = format_initial_offer(offer, ruleset)

        parsed.renewal_type = segments[3]
        hr.renewal_type = decode_renewal_type(segments[3])

        last = segments[-1]
        plan = parse_renewal_plan(last, ruleset)
        if plan is None:
            raise FormatError(f"Invalid renewal plan segment: {last}")
        parsed.renewal_plan = last
        parsed.renewal_term = plan["term"]
        parsed.price = plan["price"]
        hr.renewal_plan = format_renewal_plan(plan, ruleset)

        for segment in segments[4:-1]:
            if ruleset.is_code_type(segment):
                parsed.code_type = segment
                hr.code_type = decode_code_type(segment)
            elif segment and not parsed.campaign_text:
                parsed.campaign_text = segment
                hr.campaign_text = segment
    except FormatError as e:
        logger.info(f"Rejected promocode {code!r}: {e}")
        return ParsedPromocode.failure(code, str(e), segments, parsed, hr)

    return ParsedPromocode(
        original_code=code,
        segments=segments,
        parsed=parsed,
        human_readable=hr,
        is_valid=True,
        summary=build_summary(hr),
    )


def format_for_display(result: ParsedPromocode) -> Dict[str, Any]:
    """
    Flatten a result into the breakdown the UI renders.

    - invalid -> {"status": "error", "message": ...}
    - valid   -> {"status": "success", "code": ..., "breakdown": [{label, value, raw, [details]}]}
    """
    if not result.is_valid:
        return {"status": "error", "message": result.error or "Invalid promocode format"}

    p, hr = result.parsed, result.human_readable
    rows = [
        ("Brand", hr.brand, p.brand, None),
        ("Product", hr.product, p.product, None),
        ("Initial Offer", hr.initial_offer, p.initial_offer, {
            "length": p.initial_length,
            "period": p.initial_period,
            "discount": p.discount_amount,
            "type": p.discount_type,
        }),
        ("Renewal Type", hr.renewal_type, p.renewal_type, None),
        ("Campaign", hr.campaign_text, p.campaign_text, None),
        ("Code Type", hr.code_type, p.code_type, None),
        ("Renewal Plan", hr.renewal_plan, p.renewal_plan, {
            "term": p.renewal_term,
            "price": p.price,
        }),
    ]

    breakdown = []
    for label, value, raw, details in rows:
        if not value:
            continue
        row = {"label": label, "value": value, "raw": raw}
        if details is not None:
            row["details"] = details
        breakdown.append(row)

    return {"status": "success", "code": result.original_code, "breakdown": breakdown}
