"""
Centralized patterns and lookups for promocodes.

- SEPARATOR / CASING: how segments are joined and cased by default.
- PERIOD_MAP / TERM_MAP / PRICE_TYPE_MAP: letter codes -> display names.
- INITIAL_OFFER_REGEX / RENEWAL_PLAN_REGEX: the two segments that carry packed values.
- CODE_TYPES / CODE_TYPE_LABELS: optional intent tags and how we show them.
- AIRTABLE_TABLES / AIRTABLE_FIELDS: names in the backing base.

These live here so the encoder/decoder stay readable and we change patterns in one place.
A ruleset fetched from Airtable overrides the codec values; the lookups below are the fallback.
"""


SEPARATOR = "-"
CASING = "UPPER"
CASINGS = ("UPPER", "LOWER", "CAMEL", "KEBAB")

# Initial offer period: 3M = 3 months, 6U = 6 weeks
PERIOD_MAP = {
    "M": "Months",
    "U": "Weeks",
    "Q": "Quarters",
    "Y": "Years",
}

# Renewal term after the offer ends
TERM_MAP = {
    "M": "Monthly",
    "Q": "Quarterly",
    "Y": "Yearly",
    "U": "Weekly",
}

# Discount amount is either kroner off or a percentage
PRICE_TYPE_MAP = {
    "K": "Kroner",
    "P": "Percent",
}

RENEWAL_TYPES = {
    "T": "Termed",
    "E": "Evergreen",
}

# {length}{period}{discount}{type}, e.g. "3M199K"
# NOTE: single backslashes; four groups, the decoder relies on the order.
INITIAL_OFFER_REGEX = r"^(\d+)([MUQY])(\d+)([KP])$"

# {term}{price}, e.g. "M249"
RENEWAL_PLAN_REGEX = r"^([MQYU])(\d+)$"

INITIAL_OFFER_GROUPS = 4
RENEWAL_PLAN_GROUPS = 2

FREETEXT_MAX_LENGTH = 15

CODE_TYPES = ("WB", "HB", "CMP", "FREE", "EMP", "KS")

CODE_TYPE_LABELS = {
    "WB": "Winback",
    "HB": "Holdback",
    "CMP": "Campaign",
    "FREE": "Free",
    "EMP": "Employee",
    "KS": "Kompis",
}

# Codes shorter than this cannot hold five segments
QUICK_MIN_LENGTH = 15
QUICK_MIN_SEPARATORS = 4
MIN_SEGMENTS = 5

# Currency suffix used when showing renewal prices
PRICE_SUFFIX = "kr"

# ---------- Airtable base layout ----------

AIRTABLE_TABLES = {
    "brands": "Brands",
    "products": "Products",
    "rate_plans": "Rate Plans",
    "rulesets": "Rulesets",
    "code_types": "Vocab - Promocode Code Types",
}

AIRTABLE_FIELDS = {
    "brands": {
        "code": "Brand Code",
        "name": "Brand Name",
        "country": "Country",
        "braze_code": "Braze Code",
    },
    "products": {
        "name": "Product Name",
        "type": "Product Type",
        "code": "Product Code",
        "brand": "Brand",
        "promocode_id": "Promocode ID",
    },
    "rate_plans": {
        "code": "Plan Code",
        "name": "Plan Name",
        "price": "Price",
        "category": "Category",
        "product": "Product",
        "plan_id": "Plan ID",
    },
    "rulesets": {
        "type": "Type",
        "name": "Name",
        "version": "Version",
        "status": "Status",
        "segments_order": "Segments Order",
        "separator": "Separator",
        "casing": "Casing",
        "initial_offer_regex": "InitialOffer Regex",
        "renewal_plan_regex": "RenewalPlan Regex",
        "period_map": "Period Map (JSON)",
        "term_map": "Term Map (JSON)",
        "price_type_map": "Price Type Map (JSON)",
        "freetext_max_length": "Freetext Max Length",
    },
    "code_types": {
        "code": "Code",
        "label": "Label",
        "active": "Active",
    },
}
