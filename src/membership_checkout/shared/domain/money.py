"""Money helpers shared by pricing and the gateway adapters."""

from decimal import ROUND_HALF_UP, Decimal

# Currencies the gateway bills in whole units
ZERO_DECIMAL_CURRENCIES = frozenset({"jpy", "krw", "vnd", "clp", "pyg"})

CENTS = Decimal("0.01")


def quantize(amount: Decimal | int | str) -> Decimal:
    """Round an amount to two decimal places."""
    return Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert an amount to the gateway's smallest currency unit."""
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
