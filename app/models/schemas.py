"""
Data shapes for the promocode codec.

- Ruleset: one frozen codec configuration (separator, casing, maps, regexes, code types).
- Brand / Product / RatePlan / CodeType: rows from the Airtable base.
- PromocodeInput: what the generator form hands to `encode()`.
- ParsedPromocode: what `decode()` hands back (parsed fields, display strings, validity).
- HistoryEntry: one generated or decoded code kept for the sidebar.

If I need a new promocode field, I add it to `PromocodeInput` and `ParsedFields` here
first and then populate it in `encode.py` / `decode.py`.
"""

from __future__ import annotations

import re
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Pattern

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from app.util.segments import product_shortcode
from rules.patterns import (
    CASING,
    CODE_TYPES,
    FREETEXT_MAX_LENGTH,
    INITIAL_OFFER_GROUPS,
    INITIAL_OFFER_REGEX,
    PERIOD_MAP,
    PRICE_TYPE_MAP,
    RENEWAL_PLAN_GROUPS,
    RENEWAL_PLAN_REGEX,
    SEPARATOR,
    TERM_MAP,
)


def _check_groups(pattern: str, groups: int) -> str:
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid regular expression {pattern!r}: {e}") from e
    if compiled.groups != groups:
        raise ValueError(f"pattern {pattern!r} must have {groups} capture groups, found {compiled.groups}")
    return pattern


class Ruleset(BaseModel):
    """
    Immutable codec configuration.

    Built once (defaults or an Airtable "Rulesets" row) and passed into every
    encode/decode call. Malformed maps or patterns fail here, at load time.

    Fields I care about:
    - separator: one character between segments
    - casing: UPPER / LOWER / CAMEL / KEBAB (anything else is treated as UPPER)
    - period_map / term_map / price_type_map: letter -> display name
    - initial_offer_pattern: 4 groups (length, period, discount, type)
    - renewal_plan_pattern: 2 groups (term, price)
    - freetext_max_length: cap for the campaign segment
    - code_type_set: allowed code-type tokens
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    segments_order: Optional[str] = None

    separator: str = SEPARATOR
    casing: str = CASING
    # stored read-only (MappingProxyType); a shared ruleset is never mutated
    period_map: Mapping[str, str] = Field(default_factory=lambda: dict(PERIOD_MAP), validate_default=True)
    term_map: Mapping[str, str] = Field(default_factory=lambda: dict(TERM_MAP), validate_default=True)
    price_type_map: Mapping[str, str] = Field(default_factory=lambda: dict(PRICE_TYPE_MAP), validate_default=True)
    initial_offer_pattern: str = INITIAL_OFFER_REGEX
    renewal_plan_pattern: str = RENEWAL_PLAN_REGEX
    freetext_max_length: int = Field(default=FREETEXT_MAX_LENGTH, gt=0)
    code_type_set: FrozenSet[str] = frozenset(CODE_TYPES)

    @field_validator("separator")
    @classmethod
    def _single_char(cls, v: str) -> str:
        if len(v) != 1:
            raise ValueError(f"separator must be a single character, got {v!r}")
        return v

    @field_validator("casing", mode="before")
    @classmethod
    def _upper_casing(cls, v: Any) -> str:
        return str(v).strip().upper() if v else CASING

    @field_validator("period_map", "term_map", "price_type_map")
    @classmethod
    def _letter_keys(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        for key in v:
            if len(key) != 1 or not ("A" <= key <= "Z"):
                raise ValueError(f"map keys must be single uppercase letters, got {key!r}")
        return MappingProxyType(dict(v))

    @field_serializer("period_map", "term_map", "price_type_map")
    def _dump_map(self, v: Mapping[str, str]) -> Dict[str, str]:
        return dict(v)

    @field_validator("initial_offer_pattern")
    @classmethod
    def _initial_offer_arity(cls, v: str) -> str:
        return _check_groups(v, INITIAL_OFFER_GROUPS)

    @field_validator("renewal_plan_pattern")
    @classmethod
    def _renewal_plan_arity(cls, v: str) -> str:
        return _check_groups(v, RENEWAL_PLAN_GROUPS)

    @field_validator("code_type_set", mode="before")
    @classmethod
    def _upper_code_types(cls, v: Any) -> FrozenSet[str]:
        if isinstance(v, str):
            v = v.split(",")
        return frozenset(str(t).strip().upper() for t in v if str(t).strip())

    def initial_offer_regex(self) -> Pattern[str]:
        return re.compile(self.initial_offer_pattern)

    def renewal_plan_regex(self) -> Pattern[str]:
        return re.compile(self.renewal_plan_pattern)

    def is_code_type(self, token: str) -> bool:
        return (token or "").upper() in self.code_type_set


# ---------- Airtable rows ----------

class Brand(BaseModel):
    id: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None
    country: Optional[str] = None
    braze_code: Optional[str] = None


class Product(BaseModel):
    """
    A product row. `code` wins, then `promocode_id`, then a shortcode built from `name`.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    code: Optional[str] = None
    promocode_id: Optional[str] = None
    brand_ids: List[str] = Field(default_factory=list)

    def resolved_code(self) -> str:
        if self.code and self.code.strip():
            return self.code.strip()
        if self.promocode_id and self.promocode_id.strip():
            return self.promocode_id.strip()
        return product_shortcode(self.name)


class RatePlan(BaseModel):
    id: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    plan_id: Optional[str] = None
    product_ids: List[str] = Field(default_factory=list)


class CodeType(BaseModel):
    code: str
    label: str
    active: bool = True


# ---------- codec input / output ----------

class PromocodeInput(BaseModel):
    """
    One generator form submission.

    Everything is optional at the type level so `encode()` can report every
    missing field in one go instead of failing on the first.

    - price: resolved from the selected rate plan
    - override_price: typed in by hand; used when no rate plan price is set
    """

    brand: Optional[Brand] = None
    product: Optional[Product] = None
    initial_length: Optional[float] = None
    initial_period: Optional[str] = None
    discount_amount: Optional[float] = None
    discount_type: Optional[str] = None
    renewal_type: Optional[str] = None
    renewal_term: Optional[str] = None
    campaign_text: Optional[str] = None
    code_type: Optional[str] = None
    price: Optional[float] = None
    override_price: Optional[float] = None

    def effective_price(self) -> Optional[float]:
        return self.price if self.price is not None else self.override_price


class ParsedFields(BaseModel):
    brand: Optional[str] = None
    product: Optional[str] = None
    initial_offer: Optional[str] = None
    initial_length: Optional[int] = None
    initial_period: Optional[str] = None
    discount_amount: Optional[int] = None
    discount_type: Optional[str] = None
    renewal_type: Optional[str] = None
    campaign_text: Optional[str] = None
    code_type: Optional[str] = None
    renewal_plan: Optional[str] = None
    renewal_term: Optional[str] = None
    price: Optional[int] = None


class HumanReadable(BaseModel):
    brand: Optional[str] = None
    product: Optional[str] = None
    initial_offer: Optional[str] = None
    renewal_type: Optional[str] = None
    campaign_text: Optional[str] = None
    code_type: Optional[str] = None
    renewal_plan: Optional[str] = None


class ParsedPromocode(BaseModel):
    """
    Result of one decode.

    Either valid (parsed + human_readable + summary filled) or invalid with
    `error` set; fields parsed before the failure are kept.
    """

    original_code: Optional[str] = None
    segments: List[str] = Field(default_factory=list)
    parsed: ParsedFields = Field(default_factory=ParsedFields)
    human_readable: HumanReadable = Field(default_factory=HumanReadable)
    is_valid: bool = False
    error: Optional[str] = None
    summary: Optional[str] = None

    @classmethod
    def failure(
        cls,
        code: Any,
        error: str,
        segments: Optional[List[str]] = None,
        parsed: Optional[ParsedFields] = None,
        human_readable: Optional[HumanReadable] = None,
    ) -> "ParsedPromocode":
        return cls(
            original_code=code if isinstance(code, str) else None,
            segments=segments or [],
            parsed=parsed or ParsedFields(),
            human_readable=human_readable or HumanReadable(),
            is_valid=False,
            error=error,
        )


class HistoryEntry(BaseModel):
    id: str
    code: str
    timestamp: datetime
    inputs: Dict[str, Any] = Field(default_factory=dict)
    is_valid: Optional[bool] = None
    summary: Optional[str] = None
