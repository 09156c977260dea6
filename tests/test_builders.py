"""Tests for notification rendering: amounts, leads, templates, relative time."""

from __future__ import annotations

import pytest

from backoffice.core.types import SourceType
from backoffice.notifications.builders import NotificationBuilder, format_amount, normalize_lead
from backoffice.notifications.display import format_time_ago, newest_first
from backoffice.notifications.templates import TemplateSet
from backoffice.sources.models import BulkRfq, LeadItem, OrderEntity, QuestionEntity, ReviewEntity, SingleLead

_MIN = 60_000
_NOW = 1_714_640_000_000


class TestFormatAmount:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (0, "₹0"),
            (999, "₹999"),
            (2499, "₹2,499"),
            (125000, "₹1,25,000"),
            (12345678, "₹1,23,45,678"),
            (1499.5, "₹1,499.5"),
            (-2500, "-₹2,500"),
        ],
    )
    def test_indian_grouping(self, amount, expected):
        assert format_amount(amount) == expected

    def test_custom_symbol(self):
        assert format_amount(1000, symbol="Rs ") == "Rs 1,000"

    def test_amount_beyond_default_precision(self):
        assert format_amount(1e27) == "₹1," + "00," * 12 + "000"

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_amount_rejected(self, amount):
        with pytest.raises(ValueError):
            format_amount(amount)


class TestNormalizeLead:
    def test_single_lead_with_quantity(self):
        summary = normalize_lead(SingleLead(id="1", buyer_name="Kavya", product_name="Kurta", quantity_required=50))
        assert summary.template_id == "lead"
        assert summary.products == "Kurta (qty 50)"

    def test_buyer_falls_back_to_company(self):
        summary = normalize_lead(SingleLead(id="1", company_name="Kavya Textiles"))
        assert summary.buyer == "Kavya Textiles"
        assert normalize_lead(SingleLead(id="2")).buyer == "A buyer"

    def test_bulk_rfq_lists_first_items(self):
        rfq = BulkRfq(
            id="9",
            buyer_name="Sharma",
            items=[LeadItem(product_name=p) for p in ("A", "B", "C", "D", "E")],
        )
        summary = normalize_lead(rfq)
        assert summary.template_id == "lead_bulk"
        assert summary.products == "A, B, C +2 more"
        assert summary.item_count == 5

    def test_bulk_rfq_without_names(self):
        assert normalize_lead(BulkRfq(id="9", items=[LeadItem(), LeadItem()])).products == "2 items"
        assert normalize_lead(BulkRfq(id="9")).products == "multiple products"


class TestNotificationBuilder:
    def setup_method(self) -> None:
        self.builder = NotificationBuilder()

    def test_order(self):
        n = self.builder.build(
            OrderEntity(id="ORD-1", customer_name="Priya", total_amount=125000),
            timestamp=42,
        )
        assert n.id == "order-ORD-1-42"
        assert n.source_type == SourceType.ORDER
        assert n.title == "New Order Received"
        assert n.message == "Order ORD-1 from Priya - ₹1,25,000"
        assert n.read is False

    def test_review_prefers_title_then_comment(self):
        assert self.builder.build(ReviewEntity(id="r", title="Great")).message == "Great"
        long_comment = "x" * 80
        assert self.builder.build(ReviewEntity(id="r", comment=long_comment)).message == "x" * 60
        assert self.builder.build(ReviewEntity(id="r")).message == "New customer review"

    def test_question(self):
        n = self.builder.build(QuestionEntity(id="q", question_text="XXL?"))
        assert (n.title, n.message) == ("New Question Needs Answer", "XXL?")
        assert self.builder.build(QuestionEntity(id="q")).message == "Customer asked a question"

    def test_bulk_rfq_uses_namespaced_source_id(self):
        n = self.builder.build(BulkRfq(id="9", buyer_name="Sharma", items=[LeadItem(product_name="Shirt")]))
        assert n.source_id == "rfq:9"
        assert n.title == "New Bulk RFQ"
        assert n.message == "Sharma requested quotes for Shirt"

    def test_unknown_entity_type(self):
        with pytest.raises(TypeError):
            self.builder.build(object())


class TestTemplateSet:
    def test_builtin_templates_present(self):
        templates = TemplateSet().templates
        assert {"order", "review", "question", "lead", "lead_bulk"} <= set(templates)

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "templates.yml"
        path.write_text(
            "templates:\n  review:\n    title: \"Review waiting\"\n",
            encoding="utf-8",
        )
        ts = TemplateSet(path)
        title, message = ts.render("review", {"summary": "Soft"})
        assert title == "Review waiting"
        assert message == "Soft"

    def test_missing_file_uses_builtins(self, tmp_path):
        ts = TemplateSet(tmp_path / "absent.yml")
        assert ts.render("question", {"question": "Q"}) == ("New Question Needs Answer", "Q")

    def test_substitution_is_single_pass(self):
        title, message = TemplateSet().render("review", {"summary": "{summary} and {other}"})
        assert message == "{summary} and {other}"

    def test_unknown_template(self):
        assert TemplateSet().render("lead_hot", {}) == ("Lead Hot", "")


class TestTimeAgo:
    @pytest.mark.parametrize(
        ("age", "expected"),
        [
            (0, "Just now"),
            (59_999, "Just now"),
            (5 * _MIN, "5m ago"),
            (3 * 60 * _MIN, "3h ago"),
            (2 * 24 * 60 * _MIN, "2d ago"),
        ],
    )
    def test_relative(self, age, expected):
        assert format_time_ago(_NOW - age, _NOW) == expected

    def test_older_than_a_week_shows_date(self):
        # 2024-03-05T12:00:00Z
        assert format_time_ago(1_709_640_000_000, _NOW) == "5 Mar"

    def test_newest_first(self):
        from tests.test_store import _n

        items = [_n("order", "a", ts=1), _n("order", "b", ts=3), _n("order", "c", ts=2)]
        assert [n.source_id for n in newest_first(items)] == ["b", "c", "a"]
