"""
Unit tests for promocode generation.

Covers segment order, optional segment handling, rounding, casing and the
all-at-once input validation.
"""

import pytest

from app.models.schemas import Product, PromocodeInput, Ruleset
from app.services.encode import (
    build_segments,
    code_type_segment,
    encode,
    freetext_segment,
    initial_offer_segment,
    product_segment,
    renewal_plan_segment,
)
from app.services.exceptions import ValidationError
from app.services.history import CodeHistory
from app.util.segments import apply_casing, product_shortcode, round_half_up, sanitize_freetext


def make_inputs(**overrides):
    values = dict(
        brand={"code": "AP"},
        product={"code": "PLUS"},
        initial_length=3,
        initial_period="M",
        discount_amount=199,
        discount_type="K",
        renewal_type="T",
        renewal_term="M",
        code_type="WB",
        price=249,
    )
    values.update(overrides)
    return values


class TestEncodeScenarios:
    """End-to-end encode() cases."""

    def test_reference_code(self):
        """Test the canonical example code."""
        assert encode(make_inputs(), Ruleset()) == "AP-PLUS-3M199K-T-WB-M249"

    def test_accepts_model_input(self):
        """Test that a PromocodeInput works the same as a mapping."""
        inputs = PromocodeInput(**make_inputs())
        assert encode(inputs, Ruleset()) == "AP-PLUS-3M199K-T-WB-M249"

    def test_deterministic(self):
        """Test that the same input always yields the same code."""
        ruleset = Ruleset()
        assert encode(make_inputs(), ruleset) == encode(make_inputs(), ruleset)

    def test_zero_discount_and_price(self):
        """Test that 0 discount and 0 price are real values, not missing ones."""
        code = encode(make_inputs(discount_amount=0, price=0, code_type=None), Ruleset())
        assert code == "AP-PLUS-3M0K-T-M0"

    def test_percent_discount_evergreen(self):
        """Test a percent discount on an evergreen renewal."""
        code = encode(
            make_inputs(initial_length=6, initial_period="u", discount_amount=50, discount_type="p",
                        renewal_type="e", renewal_term="y", code_type=None, price=1990),
            Ruleset(),
        )
        assert code == "AP-PLUS-6U50P-E-Y1990"

    def test_brand_code_not_truncated(self):
        """Test that long brand codes are kept whole."""
        code = encode(make_inputs(brand={"code": "bt-x"}, code_type=None), Ruleset(separator="_"))
        assert code.startswith("BT-X_PLUS_")


class TestOptionalSegments:
    """Freetext and code-type segments."""

    def test_freetext_and_code_type_order(self):
        """Test freetext comes before the code type."""
        code = encode(make_inputs(campaign_text="summer sale 2025!"), Ruleset())
        assert code == "AP-PLUS-3M199K-T-SUMMERSALE2025-WB-M249"

    def test_freetext_truncated(self):
        """Test a 30 character freetext is cut to freetext_max_length."""
        text = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123"
        code = encode(make_inputs(campaign_text=text, code_type=None), Ruleset())
        assert code == "AP-PLUS-3M199K-T-ABCDEFGHIJKLMNO-M249"

    def test_symbol_only_freetext_omitted(self):
        """Test freetext that sanitizes to nothing leaves no empty segment."""
        code = encode(make_inputs(campaign_text="!!!", code_type=None), Ruleset())
        assert code == "AP-PLUS-3M199K-T-M249"
        assert "--" not in code

    def test_blank_freetext_omitted(self):
        """Test whitespace-only freetext is treated as absent."""
        assert freetext_segment("   ", Ruleset()) == ""

    def test_unknown_code_type_omitted(self):
        """Test that tokens outside code_type_set are dropped."""
        code = encode(make_inputs(code_type="XX"), Ruleset())
        assert code == "AP-PLUS-3M199K-T-M249"

    def test_code_type_uppercased(self):
        """Test that code types are matched case-insensitively."""
        assert code_type_segment("emp", Ruleset()) == "EMP"

    def test_custom_code_type_set(self):
        """Test a ruleset with its own code types."""
        ruleset = Ruleset(code_type_set=["vip"])
        assert code_type_segment("VIP", ruleset) == "VIP"
        assert code_type_segment("WB", ruleset) == ""


class TestProductSegment:
    """Product code resolution."""

    def test_stored_code(self):
        """Test the stored product code wins."""
        assert product_segment(Product(code="plus", promocode_id="X1", name="Plus")) == "PLUS"

    def test_promocode_id_fallback(self):
        """Test promocode id is used when there is no code."""
        assert product_segment(Product(promocode_id="pl1", name="Plus")) == "PL1"

    def test_generated_shortcode(self):
        """Test the shortcode built from the product name."""
        assert product_segment(Product(name="A+ Plus Digital")) == "APLU"
        assert product_shortcode("e-avis") == "EAVI"
        assert product_shortcode(None) == ""


class TestNumericSegments:
    """Rounding and packing of numeric values."""

    def test_initial_offer_packing(self):
        """Test the four sub-parts are packed without delimiters."""
        assert initial_offer_segment(12, "q", 25, "p") == "12Q25P"

    def test_half_up_rounding(self):
        """Test that .5 rounds up like the web tool did."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(99.4) == 99
        assert initial_offer_segment(2.5, "M", 99.5, "K") == "3M100K"

    def test_renewal_plan_price(self):
        """Test price rounding and fallback to 0."""
        assert renewal_plan_segment("m", 249.5) == "M250"
        assert renewal_plan_segment("Q", None) == "Q0"
        assert renewal_plan_segment("Y", "abc") == "Y0"

    def test_override_price_used_without_rate_plan_price(self):
        """Test override price fills in when no rate plan price is set."""
        code = encode(make_inputs(price=None, override_price=199, code_type=None), Ruleset())
        assert code.endswith("-M199")

    def test_rate_plan_price_takes_precedence(self):
        """Test a resolved 0 price beats the override."""
        code = encode(make_inputs(price=0, override_price=100, code_type=None), Ruleset())
        assert code.endswith("-M0")


class TestCasing:
    """Final casing pass over the joined string."""

    def test_upper(self):
        """Test UPPER is plain upper-casing."""
        assert apply_casing("ap-Plus-3m199k", "UPPER") == "AP-PLUS-3M199K"

    def test_unknown_casing_is_upper(self):
        """Test unrecognized casing values behave like UPPER."""
        s = "ap-Plus-3m199k"
        assert apply_casing(s, "shouty") == apply_casing(s, "UPPER")
        assert apply_casing(s, None) == s.upper()

    def test_lower_and_kebab(self):
        """Test LOWER and KEBAB both lower-case."""
        assert encode(make_inputs(), Ruleset(casing="LOWER")) == "ap-plus-3m199k-t-wb-m249"
        assert encode(make_inputs(), Ruleset(casing="kebab")) == "ap-plus-3m199k-t-wb-m249"

    def test_camel_touches_whole_string(self):
        """Test CAMEL capitalizes after each separator, including packed segments."""
        assert encode(make_inputs(), Ruleset(casing="CAMEL")) == "ap-Plus-3m199k-T-Wb-M249"

    def test_camel_with_custom_separator(self):
        """Test CAMEL follows the ruleset separator."""
        assert encode(make_inputs(), Ruleset(casing="CAMEL", separator="_")) == "ap_Plus_3m199k_T_Wb_M249"

    def test_sanitize_freetext(self):
        """Test freetext sanitization rules."""
        assert sanitize_freetext("Jul-24 kampanje!", 15) == "JUL24KAMPANJE"
        assert sanitize_freetext("abc", 2) == "AB"
        assert sanitize_freetext(None, 15) == ""


class TestValidation:
    """Input validation before any segment is built."""

    def test_all_missing_fields_reported(self):
        """Test every problem is listed, not only the first."""
        with pytest.raises(ValidationError) as exc:
            encode({}, Ruleset())
        assert len(exc.value.missing_fields) == 9
        assert "Brand is required" in exc.value.missing_fields
        assert "Price is required (select a rate plan or enter override price)" in exc.value.missing_fields

    def test_out_of_range_values(self):
        """Test zero length and negative discount are rejected together."""
        with pytest.raises(ValidationError) as exc:
            encode(make_inputs(initial_length=0, discount_amount=-5), Ruleset())
        assert exc.value.missing_fields == [
            "Initial offer length must be greater than 0",
            "Discount amount must be 0 or greater",
        ]

    def test_product_without_any_code(self):
        """Test a product with no code, id or name counts as missing."""
        with pytest.raises(ValidationError) as exc:
            encode(make_inputs(product={"name": "!!"}), Ruleset())
        assert exc.value.missing_fields == ["Product is required"]

    def test_badly_typed_field(self):
        """Test type errors in a mapping come back as ValidationError."""
        with pytest.raises(ValidationError) as exc:
            encode(make_inputs(initial_length="abc", discount_amount="lots"), Ruleset())
        problems = exc.value.missing_fields
        assert len(problems) == 2
        assert problems[0].startswith("initial_length: ")
        assert problems[1].startswith("discount_amount: ")

    @pytest.mark.parametrize("field,value,message", [
        ("initial_length", float("nan"), "Initial offer length must be greater than 0"),
        ("initial_length", float("inf"), "Initial offer length must be greater than 0"),
        ("discount_amount", float("nan"), "Discount amount must be 0 or greater"),
        ("price", float("inf"), "Price must be 0 or greater"),
    ])
    def test_non_finite_numbers(self, field, value, message):
        """Test NaN and infinity are rejected before any segment is built."""
        with pytest.raises(ValidationError) as exc:
            encode(make_inputs(**{field: value}), Ruleset())
        assert exc.value.missing_fields == [message]

    def test_message_lists_problems(self):
        """Test the exception text joins the problems."""
        err = ValidationError(missing_fields=["Brand is required", "Product is required"])
        assert str(err) == "Brand is required, Product is required"


class TestEncodeHistory:
    """History collaborator."""

    def test_history_append(self):
        """Test generated codes land in the history, newest first."""
        history = CodeHistory(limit=2)
        encode(make_inputs(), Ruleset(), history=history)
        encode(make_inputs(price=99), Ruleset(), history=history)
        encode(make_inputs(price=149), Ruleset(), history=history)

        recent = history.recent()
        assert [e.code for e in recent] == ["AP-PLUS-3M199K-T-WB-M149", "AP-PLUS-3M199K-T-WB-M99"]
        assert recent[0].inputs["renewal_plan"] == "M149"

    def test_failed_encode_not_recorded(self):
        """Test nothing is recorded when validation fails."""
        history = CodeHistory()
        with pytest.raises(ValidationError):
            encode({}, Ruleset(), history=history)
        assert len(history) == 0

    def test_build_segments_skips_empty(self):
        """Test build_segments returns only present segments."""
        segments = build_segments(PromocodeInput(**make_inputs(code_type=None)), Ruleset())
        assert segments == ["AP", "PLUS", "3M199K", "T", "M249"]
