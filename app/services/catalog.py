"""
Brand -> product -> rate plan catalog.

Holds what was fetched from Airtable for the current session and turns it into the
two lookups the decoder takes (`resolve_brand`, `resolve_product`). Passed around
explicitly; nothing here is module-global.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from app.models.schemas import Brand, Product, RatePlan
from app.services.exceptions import AirtableError
from app.util.logger import get_logger

_TERM_LETTERS = ("M", "Q", "Y", "U")
_PLAN_ID_TERM = re.compile(r"^([MQYU])")


def format_price(price) -> str:
    """Whole numbers without decimals (249), others with two (249.50); "" if not a number."""
    if price is None or price == "":
        return ""
    try:
        value = float(price)
    except (TypeError, ValueError):
        return ""
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}"


def rate_plan_display_name(plan: Optional[RatePlan]) -> str:
    if plan is None:
        return ""
    parts: List[str] = []
    if plan.name:
        parts.append(plan.name)
    if plan.price is not None:
        parts.append(f"{format_price(plan.price)} kr")
    if plan.code and plan.code not in (plan.name or ""):
        parts.append(f"({plan.code})")
    return " - ".join(parts)


def renewal_term_for(plan: Optional[RatePlan]) -> str:
    """Plan code if it is a term letter, else the plan id prefix ("M249" -> "M"), else monthly."""
    if plan is None:
        return ""
    if plan.code in _TERM_LETTERS:
        return plan.code
    if plan.plan_id:
        m = _PLAN_ID_TERM.match(plan.plan_id)
        if m:
            return m.group(1)
    return "M"


def brand_display_name(brand: Optional[Brand]) -> str:
    if brand is None:
        return ""
    return f"{brand.name} ({brand.code})"


def product_display_name(product: Optional[Product]) -> str:
    if product is None:
        return ""
    code = product.resolved_code()
    return f"{product.name} ({code})" if code else (product.name or "")


class Catalog:
    """
    Session view of the Airtable base.

    `client` is optional: a Catalog can also be filled directly (tests, offline mode).
    """

    def __init__(
        self,
        client=None,
        brands: Optional[List[Brand]] = None,
        products: Optional[List[Product]] = None,
    ):
        self.client = client
        self.brands: List[Brand] = list(brands or [])
        self.products: List[Product] = list(products or [])
        self._rate_plans: Dict[str, List[RatePlan]] = {}

    def load(self) -> "Catalog":
        """Fetch brands and all products; raises AirtableError if Airtable is unreachable."""
        if self.client is None:
            return self
        logger = get_logger()
        self.brands = self.client.fetch_brands()
        self.products = self.client.fetch_all_products()
        logger.info(f"Catalog loaded: {len(self.brands)} brands, {len(self.products)} products")
        return self

    # ---------- brands ----------

    def brands_sorted(self) -> List[Brand]:
        return sorted(self.brands, key=lambda b: (b.name or "").lower())

    def brand_by_id(self, brand_id: str) -> Optional[Brand]:
        return next((b for b in self.brands if b.id == brand_id), None)

    def brand_by_code(self, code: str) -> Optional[Brand]:
        return next((b for b in self.brands if b.code == code), None)

    def brands_by_country(self, country: str) -> List[Brand]:
        return [b for b in self.brands if b.country == country]

    # ---------- products ----------

    def products_for_brand(self, brand_id: str) -> List[Product]:
        """Products linked to a brand; falls back to the cached list if Airtable fails."""
        if not brand_id:
            return []
        if self.client is not None:
            try:
                return self.client.fetch_products_by_brand(brand_id)
            except AirtableError as e:
                get_logger().warning(f"Filtering cached products for {brand_id}: {e}")
        return [p for p in self.products if brand_id in p.brand_ids]

    def product_by_id(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def product_by_code(self, code: str) -> Optional[Product]:
        return next((p for p in self.products if p.code == code), None)

    # ---------- rate plans ----------

    def rate_plans_for_product(self, product_id: str) -> List[RatePlan]:
        if not product_id:
            return []
        if product_id not in self._rate_plans:
            plans = self.client.fetch_rate_plans_by_product(product_id) if self.client is not None else []
            self._rate_plans[product_id] = sorted(plans, key=lambda p: p.price or 0)
        return self._rate_plans[product_id]

    def set_rate_plans(self, product_id: str, plans: List[RatePlan]) -> None:
        self._rate_plans[product_id] = sorted(plans, key=lambda p: p.price or 0)

    # ---------- decoder lookups ----------

    def resolve_brand(self, code: str) -> Optional[str]:
        brand = self.brand_by_code(code)
        return brand.name if brand else None

    def resolve_product(self, code: str) -> Optional[str]:
        product = self.product_by_code(code)
        return product.name if product else None

    def refresh(self) -> "Catalog":
        if self.client is not None:
            self.client.clear_cache()
        self._rate_plans.clear()
        return self.load()
