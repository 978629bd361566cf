"""
Streamlit front-end for the promocode codec.

- Generate tab: brand -> product -> rate plan chain from Airtable, offer fields,
  optional override price; runs `encode()` and shows the code.
- Decode tab: paste a code; `quick_validate()` first, then `decode()` and a breakdown table.
- Sidebar: active ruleset and the recent generated/decoded codes for this session.

Without Airtable credentials the app still works with the default ruleset and
manual brand/product codes.
"""

from __future__ import annotations

# --- ensure package imports work when launched directly ---
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

# --- Internal modules ---
from app.config import load_config
from app.models.schemas import Brand, Product, PromocodeInput, RatePlan
from app.services.airtable import AirtableClient
from app.services.catalog import (
    Catalog,
    brand_display_name,
    product_display_name,
    rate_plan_display_name,
    renewal_term_for,
)
from app.services.decode import decode, format_for_display
from app.services.encode import encode
from app.services.exceptions import AirtableError, ValidationError
from app.services.history import CodeHistory
from app.services.rulesets import load_active_ruleset
from app.services.validate import quick_validate
from app.util.logger import configure_logging

# ---------------------------- Page setup ----------------------------

config = load_config()
configure_logging(config.log_level)

st.set_page_config(page_title="Promocode Studio", layout="wide")
st.title("Promocode Studio")
st.caption("Compose promocodes from brand / product / offer terms, or take an existing code apart.")

# ---------------------------- Session state ----------------------------

if "generated_history" not in st.session_state:
    st.session_state.generated_history = CodeHistory(limit=config.history_limit)
if "parsed_history" not in st.session_state:
    st.session_state.parsed_history = CodeHistory(limit=config.parsed_history_limit)

if "catalog" not in st.session_state:
    client: Optional[AirtableClient] = None
    catalog_error: Optional[str] = None
    if config.airtable_enabled:
        client = AirtableClient.from_config(config)
    catalog = Catalog(client=client)
    try:
        catalog.load()
    except AirtableError as e:
        catalog_error = str(e)
    code_types = client.fetch_code_types() if client is not None and not catalog_error else None
    st.session_state.catalog = catalog
    st.session_state.catalog_error = catalog_error
    st.session_state.ruleset = load_active_ruleset(client if not catalog_error else None, code_types)

catalog: Catalog = st.session_state.catalog
ruleset = st.session_state.ruleset
generated_history: Optional[CodeHistory] = st.session_state.generated_history if config.enable_history else None
parsed_history: Optional[CodeHistory] = st.session_state.parsed_history if config.enable_history else None

# ---------------------------- Sidebar ----------------------------

with st.sidebar:
    st.header("Ruleset")
    st.markdown(
        f"- Name: **{ruleset.name or '-'}** (v{ruleset.version or '-'})\n"
        f"- Separator: `{ruleset.separator}`  Casing: `{ruleset.casing}`\n"
        f"- Code types: {', '.join(sorted(ruleset.code_type_set))}\n"
        f"- Freetext max length: {ruleset.freetext_max_length}"
    )
    if st.session_state.catalog_error:
        st.warning(f"Airtable unavailable: {st.session_state.catalog_error}")
    elif not config.airtable_enabled:
        st.info("Airtable not configured; enter brand and product codes by hand.")
    if catalog.client is not None and st.button("Refresh data"):
        try:
            catalog.refresh()
        except AirtableError as e:
            st.error(str(e))

    if config.enable_history:
        st.divider()
        st.subheader("Recent codes")
        for entry in generated_history.recent(10):
            st.code(entry.code)
        if st.button("Clear history"):
            generated_history.clear()
            parsed_history.clear()


# ---------------------------- Helpers ----------------------------

def breakdown_to_dataframe(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    cols = ["label", "value", "raw"]
    df = pd.DataFrame(rows)
    for c in cols:
        if c not in df.columns:
            df[c] = None
    return df[cols]


def pick_brand() -> Optional[Brand]:
    brands = catalog.brands_sorted()
    if not brands:
        code = st.text_input("Brand code", max_chars=10)
        return Brand(code=code) if code else None
    return st.selectbox("Brand", brands, index=None, format_func=brand_display_name, placeholder="Select Brand...")


def pick_product(brand: Optional[Brand]) -> Optional[Product]:
    if brand is None or not brand.id:
        code = st.text_input("Product code", max_chars=10)
        return Product(code=code) if code else None
    products = catalog.products_for_brand(brand.id)
    if not products:
        st.info("No products available for this brand.")
        return None
    return st.selectbox("Product", products, index=None, format_func=product_display_name, placeholder="Select Product...")


def pick_rate_plan(product: Optional[Product]) -> Optional[RatePlan]:
    if product is None or not product.id:
        return None
    try:
        plans = catalog.rate_plans_for_product(product.id)
    except AirtableError as e:
        st.error(f"Error loading rate plans: {e}")
        return None
    if not plans:
        return None
    return st.selectbox(
        "Rate plan (optional)",
        plans,
        index=None,
        format_func=rate_plan_display_name,
        placeholder="Select Rate Plan (Optional)...",
    )


def options(mapping: Dict[str, str]) -> List[str]:
    return list(mapping.keys())


# ---------------------------- Tabs ----------------------------

tab_generate, tab_decode = st.tabs(["Generate", "Decode"])

with tab_generate:
    col_left, col_right = st.columns(2)

    with col_left:
        brand = pick_brand()
        product = pick_product(brand)
        rate_plan = pick_rate_plan(product)

        term_choices = options(ruleset.term_map)
        default_term = renewal_term_for(rate_plan) if rate_plan else None
        renewal_term = st.selectbox(
            "Renewal term",
            term_choices,
            index=term_choices.index(default_term) if default_term in term_choices else 0,
            format_func=lambda k: f"{ruleset.term_map[k]} ({k})",
        )
        override_price = st.number_input(
            "Override price",
            min_value=0.0,
            value=None,
            placeholder=str(rate_plan.price) if rate_plan and rate_plan.price is not None else "Enter price",
        )

    with col_right:
        initial_length = st.number_input("Initial offer length", min_value=1, value=3, step=1)
        initial_period = st.selectbox(
            "Initial offer period",
            options(ruleset.period_map),
            format_func=lambda k: f"{ruleset.period_map[k]} ({k})",
        )
        discount_amount = st.number_input("Discount amount", min_value=0, value=0, step=1)
        discount_type = st.selectbox(
            "Discount type",
            options(ruleset.price_type_map),
            format_func=lambda k: f"{ruleset.price_type_map[k]} ({k})",
        )
        renewal_type = st.radio("Renewal type", ["T", "E"], format_func={"T": "Termed", "E": "Evergreen"}.get, horizontal=True)
        campaign_text = st.text_input("Campaign text (optional)", max_chars=50)
        code_type = st.selectbox("Code type (optional)", [""] + sorted(ruleset.code_type_set))

    if st.button("Generate", type="primary"):
        price = None
        if override_price is None and rate_plan is not None:
            price = rate_plan.price or 0
        inputs = PromocodeInput(
            brand=brand,
            product=product,
            initial_length=initial_length,
            initial_period=initial_period,
            discount_amount=discount_amount,
            discount_type=discount_type,
            renewal_type=renewal_type,
            renewal_term=renewal_term,
            campaign_text=campaign_text or None,
            code_type=code_type or None,
            price=price,
            override_price=override_price,
        )
        try:
            code = encode(inputs, ruleset, history=generated_history)
        except ValidationError as e:
            st.error("Please fix: " + "; ".join(e.missing_fields))
        else:
            st.success("Promocode generated successfully!")
            st.code(code)

with tab_decode:
    pasted = st.text_input("Promocode", placeholder="AP-PLUS-3M199K-T-WB-M249").strip()

    if st.button("Decode", type="primary") and pasted:
        if not quick_validate(pasted, ruleset.separator):
            st.error("Invalid promocode format.")
        else:
            result = decode(
                pasted,
                ruleset,
                resolve_brand=catalog.resolve_brand,
                resolve_product=catalog.resolve_product,
                history=parsed_history,
            )
            display = format_for_display(result)
            if display["status"] == "error":
                st.error(display["message"])
            else:
                st.success(result.summary)
                st.dataframe(breakdown_to_dataframe(display["breakdown"]), use_container_width=True)
                with st.expander("Parsed fields"):
                    st.json(result.parsed.model_dump())

    if config.enable_history and len(parsed_history):
        st.markdown("### Recently decoded")
        st.dataframe(
            pd.DataFrame([e.model_dump(include={"code", "is_valid", "summary"}) for e in parsed_history.recent(20)]),
            use_container_width=True,
        )
