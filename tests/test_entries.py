from datetime import date, datetime
from decimal import Decimal

import pytest

from smb_cashflow.entries import (
    CATEGORIES,
    ENTRY_TYPES,
    PAYMENT_METHODS,
    Entry,
    EntryUpdate,
    from_cents,
    parse_amount,
    parse_entry_date,
    to_cents,
    validate_new_entry,
    validate_update,
)
from smb_cashflow.errors import InvalidEntryField, LedgerError


def _raw(**overrides):
    values = {
        "user_id": "shop-1",
        "entry_type": "Cash Inflow",
        "category": "Sales",
        "payment_method": "Cash",
        "amount": "120.50",
        "entry_date": "2024-03-01",
    }
    values.update(overrides)
    return values


def test_enumerations_are_closed_and_ordered():
    assert ENTRY_TYPES == ("Cash Inflow", "Cash Outflow", "Credit", "Advance")
    assert CATEGORIES == ("Sales", "COGS", "Opex", "Assets")
    assert PAYMENT_METHODS == ("Cash", "Bank", "None")


def test_validate_new_entry_builds_typed_payload():
    new_entry = validate_new_entry(**_raw(notes="  counter sale  "))

    assert new_entry.user_id == "shop-1"
    assert new_entry.entry_type == "Cash Inflow"
    assert new_entry.amount == Decimal("120.50")
    assert new_entry.entry_date == date(2024, 3, 1)
    assert new_entry.notes == "counter sale"


@pytest.mark.parametrize(
    "field, value",
    [
        ("entry_type", "Refund"),
        ("entry_type", "cash inflow"),
        ("category", "Payroll"),
        ("payment_method", "Card"),
        ("payment_method", None),
        ("amount", "-1"),
        ("amount", "abc"),
        ("amount", "NaN"),
        ("amount", True),
        ("entry_date", "01/03/2024"),
        ("user_id", ""),
    ],
)
def test_validate_new_entry_rejects_unknown_values(field, value):
    """Unknown enumeration values are rejected, never coerced."""
    with pytest.raises(InvalidEntryField):
        validate_new_entry(**_raw(**{field: value}))


def test_invalid_entry_field_is_both_ledger_and_value_error():
    with pytest.raises(LedgerError):
        validate_new_entry(**_raw(category="Other"))
    with pytest.raises(ValueError):
        validate_new_entry(**_raw(category="Other"))


def test_parse_amount_quantizes_to_cents():
    assert parse_amount("10") == Decimal("10.00")
    assert parse_amount(0.1) == Decimal("0.10")
    assert parse_amount("2.345") == Decimal("2.35")
    assert parse_amount(0) == Decimal("0.00")


def test_cents_conversions_are_exact():
    assert to_cents(Decimal("1234.56")) == 123456
    assert from_cents(123456) == Decimal("1234.56")
    assert from_cents(-50) == Decimal("-0.50")

    total = sum(to_cents(parse_amount("0.10")) for _ in range(10))
    assert from_cents(total) == Decimal("1.00")


def test_parse_entry_date_accepts_date_datetime_and_iso_string():
    assert parse_entry_date(date(2024, 2, 29)) == date(2024, 2, 29)
    assert parse_entry_date(datetime(2024, 2, 29, 18, 30)) == date(2024, 2, 29)
    assert parse_entry_date("2024-02-29") == date(2024, 2, 29)


def test_entry_is_settleable_only_for_open_credit_and_advance():
    base = dict(
        id=1,
        user_id="shop-1",
        category="Sales",
        payment_method="Bank",
        amount=Decimal("10.00"),
        entry_date=date(2024, 1, 1),
    )

    assert Entry(entry_type="Credit", **base).is_settleable
    assert Entry(entry_type="Advance", **base).is_settleable
    assert not Entry(entry_type="Cash Inflow", **base).is_settleable
    assert not Entry(
        entry_type="Credit", settled=True, settled_at=date(2024, 1, 2), **base
    ).is_settleable


def test_validate_update_checks_only_provided_fields():
    update = validate_update(EntryUpdate(amount="99.999", category="Opex"))

    assert update.amount == Decimal("100.00")
    assert update.category == "Opex"
    assert update.entry_type is None

    with pytest.raises(InvalidEntryField):
        validate_update(EntryUpdate(payment_method="Cheque"))


def test_validate_update_rejects_empty_update():
    with pytest.raises(ValueError):
        validate_update(EntryUpdate())
