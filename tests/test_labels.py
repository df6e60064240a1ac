from datetime import date
from decimal import Decimal

import pytest

from smb_cashflow.entries import CATEGORIES, ENTRY_TYPES, Entry
from smb_cashflow.labels import (
    NEGATIVE,
    NEUTRAL,
    POSITIVE,
    describe_entry,
    get_display_category,
    get_display_entry_type,
    get_entry_type_border_color,
    get_entry_type_color,
)


@pytest.mark.parametrize(
    "entry_type, label",
    [
        ("Cash Inflow", "CASH IN"),
        ("Cash Outflow", "CASH OUT"),
        ("Credit", "CREDIT"),
        ("Advance", "ADVANCE"),
    ],
)
def test_display_entry_type(entry_type, label):
    assert get_display_entry_type(entry_type) == label


def test_display_category_only_renames_opex():
    assert [get_display_category(c) for c in CATEGORIES] == [
        "Sales",
        "COGS",
        "OPEX",
        "Assets",
    ]


def test_unknown_values_fall_back_without_raising():
    assert get_display_entry_type("Refund") == "Refund"
    assert get_display_category("") == ""
    assert get_entry_type_color("Refund") == NEUTRAL


def test_unhashable_values_fall_back_without_raising():
    assert get_display_entry_type(["Credit"]) == ["Credit"]
    assert get_display_category({"name": "Sales"}) == {"name": "Sales"}
    assert get_entry_type_color(["Credit"]) == NEUTRAL


def test_colors_follow_cash_direction():
    colors = {t: get_entry_type_color(t) for t in ENTRY_TYPES}

    assert colors == {
        "Cash Inflow": POSITIVE,
        "Cash Outflow": NEGATIVE,
        "Credit": NEUTRAL,
        "Advance": NEUTRAL,
    }
    assert get_entry_type_border_color("Cash Inflow") == "positive-border"


def test_describe_entry():
    entry = Entry(
        id=3,
        user_id="shop-1",
        entry_type="Cash Outflow",
        category="Opex",
        payment_method="Cash",
        amount=Decimal("45.00"),
        entry_date=date(2024, 5, 2),
    )

    display = describe_entry(entry)

    assert display.type_label == "CASH OUT"
    assert display.category_label == "OPEX"
    assert display.color == NEGATIVE
