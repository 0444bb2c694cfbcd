from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date

from condominium.exceptions import InvalidInstallmentCountError, InvalidShareError, LedgerValidationError


def add_months(input_date: date, months: int) -> date:
    if months < 0:
        raise ValueError("months must be >= 0")
    year = input_date.year + (input_date.month - 1 + months) // 12
    month = (input_date.month - 1 + months) % 12 + 1
    day = min(input_date.day, monthrange(year, month)[1])
    return date(year, month, day)


def month_index(year: int, month: int) -> int:
    return year * 12 + (month - 1)


def installment_due_month(number: int, start_month: int, start_year: int) -> tuple[int, int]:
    """(year, month) in which installment ``number`` (1-based) falls due."""
    if number < 1:
        raise InvalidInstallmentCountError(
            f"Installment numbers start at 1, got {number}.",
            code="invalid_installment_number",
        )
    due = add_months(date(start_year, start_month, 1), number - 1)
    return due.year, due.month


def schedule(share_cents: int, count: int) -> list[int]:
    """Split ``share_cents`` into ``count`` monthly amounts.

    Every installment gets the floor of the even split; the last one also
    absorbs the remainder, so the amounts always add up to ``share_cents``.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidInstallmentCountError(
            f"Installment count must be at least 1, got {count!r}.",
            code="invalid_installment_count",
        )
    if isinstance(share_cents, bool) or not isinstance(share_cents, int) or share_cents < 0:
        raise InvalidShareError(
            f"Share must be a non-negative number of cents, got {share_cents!r}.",
            code="invalid_amount",
        )
    base = share_cents // count
    remainder = share_cents - base * count
    amounts = [base] * count
    amounts[-1] = base + remainder
    return amounts


@dataclass(frozen=True, slots=True)
class MonthRange:
    start: date
    end: date

    @classmethod
    def from_months(cls, start: tuple[int, int], end: tuple[int, int]) -> "MonthRange":
        start_year, start_month = start
        end_year, end_month = end
        try:
            start_date = date(start_year, start_month, 1)
            end_date = date(end_year, end_month, 1)
        except (TypeError, ValueError) as exc:
            raise LedgerValidationError(f"Invalid month range: {exc}", code="invalid_month_range") from exc
        if end_date < start_date:
            raise LedgerValidationError(
                "The month range ends before it starts.",
                code="invalid_month_range",
            )
        return cls(start=start_date, end=end_date)

    @classmethod
    def single(cls, year: int, month: int) -> "MonthRange":
        return cls.from_months((year, month), (year, month))

    @property
    def first_index(self) -> int:
        return month_index(self.start.year, self.start.month)

    @property
    def last_index(self) -> int:
        return month_index(self.end.year, self.end.month)

    def contains(self, year: int, month: int) -> bool:
        return self.first_index <= month_index(year, month) <= self.last_index
