from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable

from django.db import transaction
from django.utils import timezone

from condominium.exceptions import (
    ApartmentNotFoundError,
    InstallmentNotFoundError,
    InvalidPaymentError,
    ProjectNotFoundError,
)
from condominium.models import Apartment, ExtraordinaryProject, Installment, LedgerEntry
from condominium.services.installments import MonthRange, month_index

logger = logging.getLogger(__name__)

OVERRIDE_STATUSES = (Installment.Status.PAID, Installment.Status.PENDING)


def derive_status(amount_due: int, amount_paid: int) -> str:
    if amount_paid >= amount_due:
        return Installment.Status.PAID
    if amount_paid > 0:
        return Installment.Status.PARTIAL
    return Installment.Status.PENDING


def is_past_due(due_year: int, due_month: int, as_of: date) -> bool:
    """True once the whole due month lies before ``as_of``."""
    return month_index(due_year, due_month) < month_index(as_of.year, as_of.month)


def effective_status(*, amount_due: int, amount_paid: int, due_year: int, due_month: int, as_of: date) -> str:
    status = derive_status(amount_due, amount_paid)
    if status == Installment.Status.PENDING and is_past_due(due_year, due_month, as_of):
        return Installment.Status.LATE
    return status


def _validate_amount(amount_cents: int) -> int:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidPaymentError(
            f"Payment amount must be a whole number of cents, got {amount_cents!r}.",
            code="invalid_amount",
        )
    if amount_cents < 0:
        raise InvalidPaymentError("Payment amount cannot be negative.", code="negative_amount")
    return amount_cents


class PaymentLedgerService:
    """All writes to installment amounts go through here."""

    @staticmethod
    def _locked_installment(installment_id: int) -> Installment:
        try:
            return Installment.objects.select_for_update().get(pk=installment_id)
        except Installment.DoesNotExist as exc:
            raise InstallmentNotFoundError(f"Installment {installment_id} does not exist.") from exc

    @staticmethod
    def _apply_paid_amount(
        installment: Installment,
        *,
        paid_cents: int,
        when: datetime,
        user=None,
    ) -> None:
        installment.amount_paid_cents = paid_cents
        installment.status = derive_status(installment.amount_due_cents, paid_cents)
        if installment.status == Installment.Status.PAID:
            installment.paid_at = installment.paid_at or when
        else:
            installment.paid_at = None
        if user is not None:
            installment.updated_by = user
            installment._history_user = user

    @classmethod
    @transaction.atomic
    def record_payment(
        cls,
        installment_id: int,
        amount_cents: int,
        timestamp: datetime | None = None,
        *,
        payment_method: str = "",
        notes: str = "",
        user=None,
    ) -> Installment:
        amount_cents = _validate_amount(amount_cents)
        recorded_at = timestamp or timezone.now()
        installment = cls._locked_installment(installment_id)

        previous_status = installment.status
        cls._apply_paid_amount(
            installment,
            paid_cents=installment.amount_paid_cents + amount_cents,
            when=recorded_at,
            user=user,
        )
        if payment_method:
            installment.payment_method = payment_method.strip()
        installment.save()

        LedgerEntry.objects.create(
            installment=installment,
            kind=LedgerEntry.Kind.PAYMENT,
            amount_cents=amount_cents,
            recorded_at=recorded_at,
            payment_method=(payment_method or "").strip(),
            notes=(notes or "").strip(),
            created_by=user,
        )
        logger.info(
            "Recorded payment of %s cents on installment %s (%s -> %s).",
            amount_cents,
            installment.pk,
            previous_status,
            installment.status,
        )
        return installment

    @classmethod
    def _override(
        cls,
        installment: Installment,
        *,
        paid_cents: int,
        when: datetime,
        payment_method: str = "",
        notes: str = "",
        user=None,
    ) -> bool:
        delta = paid_cents - installment.amount_paid_cents
        new_status = derive_status(installment.amount_due_cents, paid_cents)
        if delta == 0 and new_status == installment.status and not (payment_method or notes):
            return False

        cls._apply_paid_amount(installment, paid_cents=paid_cents, when=when, user=user)
        if payment_method:
            installment.payment_method = payment_method.strip()
        if notes:
            installment.notes = notes.strip()
        installment.save()

        LedgerEntry.objects.create(
            installment=installment,
            kind=LedgerEntry.Kind.OVERRIDE,
            amount_cents=delta,
            recorded_at=when,
            payment_method=(payment_method or "").strip(),
            notes=(notes or "").strip(),
            created_by=user,
        )
        return True

    @staticmethod
    def _target_paid_cents(installment: Installment, status: str) -> int:
        if status == Installment.Status.PAID:
            return installment.amount_due_cents
        return 0

    @staticmethod
    def _validate_override_status(status: str) -> str:
        if status not in OVERRIDE_STATUSES:
            raise InvalidPaymentError(
                f"Bulk corrections can only set paid or pending, got {status!r}.",
                code="invalid_status",
            )
        return status

    @classmethod
    @transaction.atomic
    def bulk_set_status(
        cls,
        apartment_id: int,
        project_id: int,
        month_range: MonthRange,
        status: str,
        *,
        user=None,
    ) -> int:
        status = cls._validate_override_status(status)
        if not ExtraordinaryProject.objects.filter(pk=project_id).exists():
            raise ProjectNotFoundError(f"Project {project_id} does not exist.")
        if not Apartment.objects.filter(pk=apartment_id).exists():
            raise ApartmentNotFoundError(f"Apartment {apartment_id} does not exist.")

        now = timezone.now()
        installments = (
            Installment.objects.select_for_update()
            .filter(project_id=project_id, apartment_id=apartment_id)
            .order_by("installment_number")
        )
        changed = 0
        for installment in installments:
            if not month_range.contains(installment.due_year, installment.due_month):
                continue
            if cls._override(
                installment,
                paid_cents=cls._target_paid_cents(installment, status),
                when=now,
                user=user,
            ):
                changed += 1

        logger.info(
            "Set %s installment(s) of apartment %s in project %s to %s (%s to %s).",
            changed,
            apartment_id,
            project_id,
            status,
            month_range.start.strftime("%m/%Y"),
            month_range.end.strftime("%m/%Y"),
        )
        return changed

    @classmethod
    @transaction.atomic
    def bulk_set_status_for_ids(cls, installment_ids: Iterable[int], status: str, *, user=None) -> int:
        status = cls._validate_override_status(status)
        normalized_ids = sorted({int(installment_id) for installment_id in installment_ids})
        if not normalized_ids:
            return 0

        now = timezone.now()
        changed = 0
        for installment in Installment.objects.select_for_update().filter(pk__in=normalized_ids).order_by("pk"):
            if cls._override(
                installment,
                paid_cents=cls._target_paid_cents(installment, status),
                when=now,
                user=user,
            ):
                changed += 1
        logger.info("Set %s of %s selected installment(s) to %s.", changed, len(normalized_ids), status)
        return changed

    @classmethod
    @transaction.atomic
    def set_payment_status(
        cls,
        installment_id: int,
        status: str,
        *,
        paid_amount_cents: int | None = None,
        payment_method: str = "",
        notes: str = "",
        user=None,
    ) -> Installment:
        installment = cls._locked_installment(installment_id)
        if status == Installment.Status.PAID:
            paid_cents = installment.amount_due_cents
            if paid_amount_cents is not None:
                paid_cents = _validate_amount(paid_amount_cents)
                if paid_cents < installment.amount_due_cents:
                    raise InvalidPaymentError(
                        "A paid installment needs at least the amount due.",
                        code="invalid_paid_amount",
                    )
        elif status == Installment.Status.PENDING:
            paid_cents = 0
        elif status == Installment.Status.PARTIAL:
            if paid_amount_cents is None:
                raise InvalidPaymentError("A partial payment needs an amount.", code="missing_amount")
            paid_cents = _validate_amount(paid_amount_cents)
            if not 0 < paid_cents < installment.amount_due_cents:
                raise InvalidPaymentError(
                    "A partial payment must be above zero and below the amount due.",
                    code="invalid_partial_amount",
                )
        else:
            raise InvalidPaymentError(f"Status {status!r} cannot be set manually.", code="invalid_status")

        cls._override(
            installment,
            paid_cents=paid_cents,
            when=timezone.now(),
            payment_method=payment_method,
            notes=notes,
            user=user,
        )
        return installment
