from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Iterable

from django.conf import settings
from django.utils import timezone

from condominium.exceptions import ApartmentNotFoundError, BuildingNotFoundError, LedgerValidationError
from condominium.models import Apartment, Building, ExtraordinaryProject, Installment
from condominium.services.installments import month_index

SCOPE_APARTMENT = "apartment"
SCOPE_BUILDING = "building"

LEVEL_OK = "ok"
LEVEL_WARNING = "warning"
LEVEL_CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class PaymentStatusSummary:
    scope: str
    scope_id: int
    as_of: str
    balance_cents: int
    overdue_count: int
    active_project_count: int
    total_due_cents: int
    total_paid_cents: int
    level: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class _Totals:
    due_cents: int
    paid_cents: int
    balance_cents: int
    overdue_count: int


def summarize_installments(rows: Iterable[tuple[int, int, int, int]], as_of: date) -> _Totals:
    """Aggregate ``(due_year, due_month, amount_due, amount_paid)`` rows.

    Only installments due up to the ``as_of`` month count toward the balance;
    an installment is overdue once its due month has fully elapsed.
    Overpayments do not offset other installments.
    """
    current = month_index(as_of.year, as_of.month)
    due_cents = paid_cents = balance_cents = overdue_count = 0
    for due_year, due_month, amount_due, amount_paid in rows:
        period = month_index(due_year, due_month)
        if period > current:
            continue
        due_cents += amount_due
        paid_cents += min(amount_paid, amount_due)
        balance_cents += max(0, amount_due - amount_paid)
        if period < current and amount_paid < amount_due:
            overdue_count += 1
    return _Totals(
        due_cents=due_cents,
        paid_cents=paid_cents,
        balance_cents=balance_cents,
        overdue_count=overdue_count,
    )


def status_level(*, balance_cents: int, overdue_count: int) -> str:
    if balance_cents <= 0 and overdue_count == 0:
        return LEVEL_OK
    max_overdue = int(getattr(settings, "CONDOMINIUM_STATUS_WARNING_MAX_OVERDUE", 2))
    max_balance = int(getattr(settings, "CONDOMINIUM_STATUS_WARNING_MAX_BALANCE_CENTS", 50000))
    if overdue_count <= max_overdue and balance_cents < max_balance:
        return LEVEL_WARNING
    return LEVEL_CRITICAL


class PaymentStatusService:
    def __init__(self, *, as_of: date | datetime | None = None):
        if isinstance(as_of, datetime):
            as_of = timezone.localtime(as_of).date() if timezone.is_aware(as_of) else as_of.date()
        self.as_of = as_of or timezone.localdate()

    def _active_installments(self):
        return Installment.objects.filter(project__status=ExtraordinaryProject.Status.ACTIVE)

    def _build(self, *, scope: str, scope_id: int, installments, active_project_count: int) -> PaymentStatusSummary:
        rows = installments.values_list("due_year", "due_month", "amount_due_cents", "amount_paid_cents")
        totals = summarize_installments(rows, self.as_of)
        return PaymentStatusSummary(
            scope=scope,
            scope_id=int(scope_id),
            as_of=self.as_of.isoformat(),
            balance_cents=totals.balance_cents,
            overdue_count=totals.overdue_count,
            active_project_count=active_project_count,
            total_due_cents=totals.due_cents,
            total_paid_cents=totals.paid_cents,
            level=status_level(balance_cents=totals.balance_cents, overdue_count=totals.overdue_count),
        )

    def for_apartment(self, apartment_id: int) -> PaymentStatusSummary:
        if not Apartment.objects.filter(pk=apartment_id).exists():
            raise ApartmentNotFoundError(f"Apartment {apartment_id} does not exist.")
        installments = self._active_installments().filter(apartment_id=apartment_id)
        active_projects = installments.order_by().values("project_id").distinct().count()
        return self._build(
            scope=SCOPE_APARTMENT,
            scope_id=apartment_id,
            installments=installments,
            active_project_count=active_projects,
        )

    def for_building(self, building_id: int) -> PaymentStatusSummary:
        if not Building.objects.filter(pk=building_id).exists():
            raise BuildingNotFoundError(f"Building {building_id} does not exist.")
        installments = self._active_installments().filter(project__building_id=building_id)
        active_projects = ExtraordinaryProject.objects.filter(
            building_id=building_id,
            status=ExtraordinaryProject.Status.ACTIVE,
        ).count()
        return self._build(
            scope=SCOPE_BUILDING,
            scope_id=building_id,
            installments=installments,
            active_project_count=active_projects,
        )


def get_status_summary(
    scope: str,
    scope_id: int,
    as_of: date | datetime | None = None,
) -> PaymentStatusSummary:
    service = PaymentStatusService(as_of=as_of)
    if scope == SCOPE_APARTMENT:
        return service.for_apartment(scope_id)
    if scope == SCOPE_BUILDING:
        return service.for_building(scope_id)
    raise LedgerValidationError(f"Unknown summary scope {scope!r}.", code="invalid_scope")
