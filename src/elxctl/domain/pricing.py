"""Shipment pricing in minor currency units.

All amounts are integers in the smallest denomination (pence, cents).
The total is derived on every call and never stored, so it cannot drift
from the underlying fields.

Currencies are not converted or cross-checked: summing GBP and EUR
amounts is a caller error that this module does not detect.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

DEFAULT_CURRENCY = "GBP"


class Money(BaseModel):
    """An (amount, currency) pair in minor units."""

    model_config = {"frozen": True}

    amount: int = Field(default=0, ge=0)
    currency: str = DEFAULT_CURRENCY

    @field_validator("currency")
    @classmethod
    def _iso_code(cls, value: str) -> str:
        code = value.strip().upper()
        if len(code) != 3 or not code.isalpha():
            msg = f"Currency must be a 3-letter ISO code, got {value!r}"
            raise ValueError(msg)
        return code


class Surcharge(BaseModel):
    """A named extra charge, e.g. ``DOC`` (documentation) or ``BAF`` (bunker)."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    code: str = Field(min_length=1)
    value: Money
    description: str | None = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.upper()


class Pricing(BaseModel):
    """Pricing sub-fields of a shipment."""

    model_config = {"frozen": True}

    base: Money = Field(default_factory=Money)
    surcharges: tuple[Surcharge, ...] = ()
    insurance: Money = Field(default_factory=Money)
    vat: Money = Field(default_factory=Money)
    discount: Money = Field(default_factory=Money)

    def with_surcharge(self, surcharge: Surcharge) -> Pricing:
        """Return a copy with *surcharge* appended."""
        return self.model_copy(update={"surcharges": (*self.surcharges, surcharge)})

    def currencies(self) -> set[str]:
        """Distinct currencies used across all sub-fields."""
        found = {self.base.currency, self.insurance.currency, self.vat.currency}
        found.add(self.discount.currency)
        found.update(s.value.currency for s in self.surcharges)
        return found


def total(pricing: Pricing) -> int:
    """base + surcharges + insurance + vat - discount, in minor units."""
    surcharges = sum(s.value.amount for s in pricing.surcharges)
    return (
        pricing.base.amount
        + surcharges
        + pricing.insurance.amount
        + pricing.vat.amount
        - pricing.discount.amount
    )


def format_minor(amount: int, currency: str) -> str:
    """Human rendering, e.g. ``117.00 GBP``. Assumes two decimal places."""
    sign = "-" if amount < 0 else ""
    whole, cents = divmod(abs(amount), 100)
    return f"{sign}{whole}.{cents:02d} {currency}"
