"""Tests for pricing arithmetic in minor units."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from elxctl.domain.pricing import Money, Pricing, Surcharge, format_minor, total


def _gbp(amount: int) -> Money:
    return Money(amount=amount, currency="GBP")


class TestTotal:
    def test_full_breakdown(self) -> None:
        pricing = Pricing(
            base=_gbp(100_000),
            surcharges=(Surcharge(code="DOC", value=_gbp(5_000)),),
            insurance=_gbp(2_000),
            vat=_gbp(20_000),
            discount=_gbp(10_000),
        )
        assert total(pricing) == 117_000

    def test_empty_pricing_is_zero(self) -> None:
        assert total(Pricing()) == 0

    def test_with_surcharge_returns_copy(self) -> None:
        pricing = Pricing(base=_gbp(1_000))
        updated = pricing.with_surcharge(Surcharge(code="baf", value=_gbp(250)))
        assert total(pricing) == 1_000
        assert total(updated) == 1_250
        assert updated.surcharges[0].code == "BAF"

    def test_discount_can_exceed_charges(self) -> None:
        assert total(Pricing(base=_gbp(100), discount=_gbp(300))) == -200


class TestMoney:
    def test_currency_normalized(self) -> None:
        assert Money(amount=1, currency=" eur ").currency == "EUR"

    @pytest.mark.parametrize("currency", ["EURO", "E1R", ""])
    def test_bad_currency_rejected(self, currency: str) -> None:
        with pytest.raises(ValidationError):
            Money(amount=1, currency=currency)

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Money(amount=-1)

    def test_currencies(self) -> None:
        pricing = Pricing(base=_gbp(1)).with_surcharge(
            Surcharge(code="THC", value=Money(amount=5, currency="EUR"))
        )
        assert pricing.currencies() == {"GBP", "EUR"}


class TestFormatMinor:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(117_000, "1170.00 GBP"), (5, "0.05 GBP"), (-250, "-2.50 GBP")],
    )
    def test_format(self, amount: int, expected: str) -> None:
        assert format_minor(amount, "GBP") == expected
