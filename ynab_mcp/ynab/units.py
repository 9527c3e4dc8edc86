"""
Milliunit conversion helpers.

YNAB stores every amount as an integer number of milliunits
(1000 milliunits = 1 currency unit). Negative amounts are outflows.
"""
from decimal import Decimal, ROUND_HALF_UP

MILLIUNITS_PER_UNIT = 1000


def milliunits_to_float(milliunits: int) -> float:
    """Convert milliunits to display units, keeping the sign."""
    return milliunits / 1000.0


def float_to_milliunits(amount: float) -> int:
    """
    Convert display units to milliunits.

    Rounds half away from zero. The value goes through its shortest decimal
    repr first so binary artifacts (10.1 * 1000 == 10099.999...) do not
    lose a milliunit.
    """
    scaled = Decimal(str(amount)) * MILLIUNITS_PER_UNIT
    # ROUND_HALF_UP on Decimal rounds away from zero for negatives too
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_currency(milliunits: int) -> str:
    return f"${milliunits_to_float(milliunits):.2f}"
