from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from django.conf import settings

from condominium.exceptions import AllocationConsistencyError
from condominium.services.installments import installment_due_month, schedule
from condominium.services.money import ZERO, pro_rate, to_decimal_permillage

logger = logging.getLogger(__name__)

DEFAULT_MAX_INSTALLMENTS = 36


def max_installments() -> int:
    return int(getattr(settings, "CONDOMINIUM_MAX_INSTALLMENTS", DEFAULT_MAX_INSTALLMENTS))


def default_installments() -> int:
    return int(getattr(settings, "CONDOMINIUM_DEFAULT_INSTALLMENTS", 12))


def permillage_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "CONDOMINIUM_PERMILLAGE_TOLERANCE", "1")))


@dataclass(frozen=True, slots=True)
class ProjectTerms:
    budget_cents: int
    installment_count: int
    start_month: int
    start_year: int


@dataclass(frozen=True, slots=True)
class ApartmentInput:
    apartment_id: int
    permillage: Decimal | float | str | None
    unit: str = ""


@dataclass(frozen=True, slots=True)
class InstallmentPlan:
    number: int
    due_year: int
    due_month: int
    amount_cents: int


@dataclass(slots=True)
class ApartmentAllocation:
    apartment_id: int
    unit: str
    permillage: Decimal
    total_share_cents: int
    installments: list[InstallmentPlan]

    @property
    def monthly_payment_cents(self) -> int:
        if not self.installments:
            return 0
        average = Decimal(self.total_share_cents) / Decimal(len(self.installments))
        return int(average.to_integral_value(rounding=ROUND_HALF_UP))


@dataclass(slots=True)
class AllocationResult:
    budget_cents: int
    total_permillage: Decimal
    apartments: list[ApartmentAllocation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_allocated_cents(self) -> int:
        return sum(apartment.total_share_cents for apartment in self.apartments)

    @property
    def installment_count(self) -> int:
        return sum(len(apartment.installments) for apartment in self.apartments)


def validate_project_name(name: str) -> list[str]:
    if not name or len(name.strip()) < 3:
        return ["Project name must have at least 3 characters."]
    return []


def validate_project_input(
    *,
    name: str,
    budget_cents: int,
    installment_count: int,
    start_month: int,
    start_year: int,
    today: date,
) -> list[str]:
    errors = validate_project_name(name)
    if budget_cents is None or budget_cents <= 0:
        errors.append("Budget must be greater than zero.")
    limit = max_installments()
    if installment_count is None or not 1 <= installment_count <= limit:
        errors.append(f"Installment count must be between 1 and {limit}.")
    if start_month is None or not 1 <= start_month <= 12:
        errors.append("Start month must be between 1 and 12.")
    past = int(getattr(settings, "CONDOMINIUM_START_YEAR_PAST", 5))
    future = int(getattr(settings, "CONDOMINIUM_START_YEAR_FUTURE", 10))
    if start_year is None or not today.year - past <= start_year <= today.year + future:
        errors.append(f"Start year must be between {today.year - past} and {today.year + future}.")
    return errors


def _plan_installments(share_cents: int, terms: ProjectTerms) -> list[InstallmentPlan]:
    amounts = schedule(share_cents, terms.installment_count)
    plans: list[InstallmentPlan] = []
    for number, amount in enumerate(amounts, start=1):
        due_year, due_month = installment_due_month(number, terms.start_month, terms.start_year)
        plans.append(
            InstallmentPlan(
                number=number,
                due_year=due_year,
                due_month=due_month,
                amount_cents=amount,
            )
        )
    return plans


def _verify(apartment: ApartmentAllocation, terms: ProjectTerms) -> None:
    scheduled = sum(plan.amount_cents for plan in apartment.installments)
    if scheduled != apartment.total_share_cents or len(apartment.installments) != terms.installment_count:
        logger.error(
            "Allocation invariant violated for apartment %s: share=%s scheduled=%s installments=%s/%s",
            apartment.apartment_id,
            apartment.total_share_cents,
            scheduled,
            len(apartment.installments),
            terms.installment_count,
        )
        raise AllocationConsistencyError(
            f"Schedule for apartment {apartment.apartment_id} sums to {scheduled} "
            f"instead of {apartment.total_share_cents} cents."
        )


def allocate(terms: ProjectTerms, apartments: Iterable[ApartmentInput]) -> AllocationResult:
    """Split a project's budget over apartments and installments.

    Pure: nothing is persisted, and calling it twice for one project yields
    two independent schedules.
    """
    apartment_list = list(apartments)
    result = AllocationResult(
        budget_cents=terms.budget_cents,
        total_permillage=ZERO,
    )
    if not apartment_list:
        return result

    total_permillage = ZERO
    for apartment in apartment_list:
        permillage = to_decimal_permillage(apartment.permillage)
        total_permillage += permillage
        if permillage == ZERO:
            result.warnings.append(f"Apartment {apartment.unit or apartment.apartment_id} has no permillage defined.")
            share_cents = 0
        else:
            share_cents = pro_rate(terms.budget_cents, permillage)

        allocation = ApartmentAllocation(
            apartment_id=apartment.apartment_id,
            unit=apartment.unit,
            permillage=permillage,
            total_share_cents=share_cents,
            installments=_plan_installments(share_cents, terms),
        )
        _verify(allocation, terms)
        result.apartments.append(allocation)

    result.total_permillage = total_permillage
    if abs(total_permillage - Decimal("1000")) > permillage_tolerance():
        result.warnings.append(f"Total permillage ({total_permillage:.2f}‰) differs from 1000‰.")
    return result
