"""Unit tests for Event purchase detection and money parsing."""

import dataclasses
from decimal import Decimal
from typing import Any

import pytest

from domain.entities.event import Event
from domain.entities.money import MAX_AMOUNT, parse_amount, quantize


class TestParseAmount:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (59.99, Decimal("59.99")),
            (10, Decimal("10.00")),
            ("12.5", Decimal("12.50")),
            (" 7 ", Decimal("7.00")),
            (Decimal("0.005"), Decimal("0.01")),
        ],
    )
    def test_parses_numbers(self, value: Any, expected: Decimal) -> None:
        assert parse_amount(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, True, False, "abc", "", float("inf"), float("nan"), "NaN", {"v": 1}, [1]],
    )
    def test_rejects_non_numbers(self, value: Any) -> None:
        assert parse_amount(value) is None

    @pytest.mark.parametrize(
        "value", [1e30, "1e40", Decimal("1E+27"), 1_000_000_000_000, "-1e13"]
    )
    def test_rejects_amounts_beyond_storable_range(self, value: Any) -> None:
        assert parse_amount(value) is None

    def test_accepts_largest_storable_amount(self) -> None:
        assert parse_amount("999999999999.99") == MAX_AMOUNT
        assert parse_amount("999999999999.995") is None

    def test_quantize_rounds_half_up(self) -> None:
        assert quantize(Decimal("1.005")) == Decimal("1.01")
        assert quantize(Decimal("1.004")) == Decimal("1.00")


class TestPurchaseAmount:
    def test_purchase_with_positive_amount(self) -> None:
        event = Event(event_type="purchase", properties={"amount": 59.99})

        assert event.is_purchase
        assert event.purchase_amount() == Decimal("59.99")

    def test_event_type_is_case_insensitive(self) -> None:
        event = Event(event_type="Purchase", properties={"amount": "5"})

        assert event.purchase_amount() == Decimal("5.00")

    @pytest.mark.parametrize(
        "properties",
        [
            {},
            {"amount": None},
            {"amount": 0},
            {"amount": -3},
            {"amount": "ten"},
            {"amount": True},
            {"amount": 1e30},
            {"amount": 1e12},
        ],
    )
    def test_purchase_without_valid_amount_earns_nothing(
        self, properties: dict[str, Any]
    ) -> None:
        event = Event(event_type="purchase", properties=properties)

        assert event.purchase_amount() is None

    def test_sub_cent_purchase_counts_with_zero_spend(self) -> None:
        event = Event(event_type="purchase", properties={"amount": 0.004})

        assert event.purchase_amount() == Decimal("0.00")

    def test_event_is_frozen(self) -> None:
        event = Event(event_type="page_view")

        with pytest.raises(dataclasses.FrozenInstanceError):
            event.event_type = "purchase"  # type: ignore[misc]

    def test_non_purchase_ignores_amount(self) -> None:
        event = Event(event_type="page_view", properties={"amount": 20})

        assert not event.is_purchase
        assert event.purchase_amount() is None
