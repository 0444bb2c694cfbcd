from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP

from condominium.exceptions import InvalidShareError

PERMILLE = Decimal("1000")
PERMILLAGE_QUANT = Decimal("0.001")
ZERO = Decimal("0")


def to_decimal_permillage(value: object) -> Decimal:
    if value is None or value == "":
        return ZERO.quantize(PERMILLAGE_QUANT)
    try:
        permillage = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidShareError(f"Invalid permillage: {value!r}.", code="invalid_permillage") from exc
    if not permillage.is_finite():
        raise InvalidShareError(f"Invalid permillage: {value!r}.", code="invalid_permillage")
    return permillage.quantize(PERMILLAGE_QUANT, rounding=ROUND_HALF_UP)


def pro_rate(total_cents: int, permillage: object) -> int:
    """Share of ``total_cents`` owed for ``permillage`` parts per thousand.

    Rounds down to whole cents, so the shares of a building whose permillages
    add up to 1000 never exceed the total; the undistributed drift is below
    one cent per apartment.
    """
    if isinstance(total_cents, bool) or not isinstance(total_cents, int) or total_cents < 0:
        raise InvalidShareError(
            f"Amount must be a non-negative number of cents, got {total_cents!r}.",
            code="invalid_amount",
        )
    permillage = to_decimal_permillage(permillage)
    if permillage <= ZERO or permillage > PERMILLE:
        raise InvalidShareError(
            f"Permillage must be greater than 0 and at most 1000, got {permillage}.",
            code="invalid_permillage",
        )
    share = (Decimal(total_cents) * permillage / PERMILLE).to_integral_value(rounding=ROUND_FLOOR)
    return int(share)


def progress_percent(paid_cents: int, total_cents: int) -> int:
    if total_cents <= 0:
        return 0
    percent = (Decimal(paid_cents) * Decimal("100") / Decimal(total_cents)).to_integral_value(
        rounding=ROUND_HALF_UP
    )
    return min(100, int(percent))


def format_cents(cents: int) -> str:
    amount = (Decimal(cents) / Decimal("100")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{amount:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".") + " €"
