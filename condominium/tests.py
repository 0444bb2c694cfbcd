from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

from django.contrib import admin, messages
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.test import RequestFactory, TestCase
from django.utils import timezone

from .admin import ExtraordinaryProjectAdmin, InstallmentAdmin
from .exceptions import (
    ApartmentNotFoundError,
    BuildingNotFoundError,
    InstallmentNotFoundError,
    InvalidPaymentError,
    LedgerValidationError,
    ProjectLockedError,
    ProjectNotFoundError,
    ProjectValidationError,
)
from .models import Apartment, ApartmentShare, Building, ExtraordinaryProject, Installment, LedgerEntry
from .services.allocation import ProjectTerms
from .services.installments import MonthRange
from .services.ledger import PaymentLedgerService
from .services.projects import ExtraordinaryProjectService
from .services.status_summary import PaymentStatusService, get_status_summary


class CondominiumFixtureMixin:
    """Building with 600‰ + 400‰ apartments and a storage room without permillage."""

    def setUp(self):
        self.manager = get_user_model().objects.create_user(username="gestor", password="pw")
        self.resident = get_user_model().objects.create_user(
            username="ana",
            password="pw",
            first_name="Ana",
            last_name="Costa",
        )
        self.building = Building.objects.create(name="Edifício Aurora")
        self.apartment_a = Apartment.objects.create(
            building=self.building,
            unit="1A",
            permillage=Decimal("600"),
            resident=self.resident,
        )
        self.apartment_b = Apartment.objects.create(building=self.building, unit="1B", permillage=Decimal("400"))
        self.storage = Apartment.objects.create(building=self.building, unit="Cave", permillage=None)
        self.service = ExtraordinaryProjectService(today=date(2026, 1, 15))

    def _create_project(self, **overrides):
        values = {
            "building_id": self.building.pk,
            "name": "Fachada",
            "total_budget_cents": 120000,
            "start_month": 1,
            "start_year": 2026,
            "installment_count": 12,
            "created_by": self.manager,
        }
        values.update(overrides)
        return self.service.create_project(**values)

    def _installment(self, project, apartment, number):
        return Installment.objects.get(project=project, apartment=apartment, installment_number=number)


class ProjectCreationTests(CondominiumFixtureMixin, TestCase):
    def test_creates_shares_and_installments(self):
        with self.assertLogs("condominium.services.projects", level="INFO") as logs:
            project = self._create_project()

        self.assertEqual(project.status, ExtraordinaryProject.Status.ACTIVE)
        self.assertEqual(project.shares.count(), 3)
        self.assertEqual(project.installments.count(), 36)

        share_a = ApartmentShare.objects.get(project=project, apartment=self.apartment_a)
        self.assertEqual(share_a.total_share_cents, 72000)
        self.assertEqual(share_a.permillage, Decimal("600.000"))

        amounts = list(
            project.installments.filter(apartment=self.apartment_b)
            .order_by("installment_number")
            .values_list("amount_due_cents", flat=True)
        )
        self.assertEqual(amounts, [4000] * 12)

        last = self._installment(project, self.apartment_a, 12)
        self.assertEqual((last.due_year, last.due_month), (2026, 12))
        self.assertEqual(last.status, Installment.Status.PENDING)
        self.assertTrue(any("no permillage" in line for line in logs.output))

    def test_zero_permillage_apartment_rows_are_settled(self):
        project = self._create_project()
        rows = project.installments.filter(apartment=self.storage)
        self.assertEqual(rows.count(), 12)
        self.assertEqual(set(rows.values_list("amount_due_cents", flat=True)), {0})
        self.assertEqual(set(rows.values_list("status", flat=True)), {Installment.Status.PAID})

    def test_reference_split_over_twelve_months(self):
        building = Building.objects.create(name="Edifício Sol")
        apartment = Apartment.objects.create(building=building, unit="2º Dto", permillage=Decimal("16.49"))

        project = self._create_project(
            building_id=building.pk,
            total_budget_cents=4577310,
            start_month=11,
            start_year=2025,
        )

        amounts = list(
            project.installments.filter(apartment=apartment)
            .order_by("installment_number")
            .values_list("amount_due_cents", flat=True)
        )
        self.assertEqual(amounts, [6289] * 11 + [6300])
        self.assertEqual(project.shares.get().total_share_cents, 75479)

    def test_installment_count_defaults_from_settings(self):
        with self.settings(CONDOMINIUM_DEFAULT_INSTALLMENTS=6):
            project = self._create_project(installment_count=None)
        self.assertEqual(project.installment_count, 6)
        self.assertEqual(project.installments.filter(apartment=self.apartment_a).count(), 6)

    def test_invalid_input_writes_nothing(self):
        with self.assertRaises(ProjectValidationError) as ctx:
            self._create_project(name="ab", installment_count=37)

        self.assertEqual(len(ctx.exception.messages), 2)
        self.assertIn("Installment count", ctx.exception.reason)
        self.assertFalse(ExtraordinaryProject.objects.exists())
        self.assertFalse(Installment.objects.exists())

    def test_unknown_building(self):
        with self.assertRaises(BuildingNotFoundError):
            self._create_project(building_id=99999)
        self.assertFalse(ExtraordinaryProject.objects.exists())

    def test_later_roster_changes_do_not_touch_existing_schedules(self):
        project = self._create_project()
        Apartment.objects.create(building=self.building, unit="2A", permillage=Decimal("100"))
        self.apartment_a.permillage = Decimal("500")
        self.apartment_a.save()

        self.assertEqual(project.installments.count(), 36)
        self.assertEqual(ApartmentShare.objects.get(project=project, apartment=self.apartment_a).total_share_cents, 72000)

    def test_preview_does_not_persist(self):
        terms = ProjectTerms(budget_cents=100000, installment_count=4, start_month=3, start_year=2026)
        first = self.service.preview(building_id=self.building.pk, terms=terms)
        second = self.service.preview(building_id=self.building.pk, terms=terms)

        self.assertEqual(first.total_allocated_cents, 100000)
        self.assertEqual(first.installment_count, 12)
        self.assertIsNot(first.apartments[0], second.apartments[0])
        self.assertFalse(ExtraordinaryProject.objects.exists())

    def test_creation_is_recorded_in_history(self):
        project = self._create_project()
        record = project.history.get()
        self.assertEqual(record.history_type, "+")
        self.assertEqual(record.total_budget_cents, 120000)


class RecordPaymentTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()
        self.installment = self._installment(self.project, self.apartment_a, 1)

    def test_partial_payments_accumulate(self):
        first = timezone.make_aware(datetime(2026, 1, 5, 10, 0))
        second = timezone.make_aware(datetime(2026, 1, 20, 10, 0))

        updated = PaymentLedgerService.record_payment(self.installment.pk, 2500, first, user=self.manager)
        self.assertEqual(updated.amount_paid_cents, 2500)
        self.assertEqual(updated.status, Installment.Status.PARTIAL)
        self.assertIsNone(updated.paid_at)

        updated = PaymentLedgerService.record_payment(
            self.installment.pk,
            3500,
            second,
            payment_method=" MB Way ",
            user=self.manager,
        )
        self.assertEqual(updated.amount_paid_cents, 6000)
        self.assertEqual(updated.status, Installment.Status.PAID)
        self.assertEqual(updated.paid_at, second)
        self.assertEqual(updated.payment_method, "MB Way")

        entries = LedgerEntry.objects.filter(installment=self.installment).order_by("recorded_at")
        self.assertEqual(list(entries.values_list("amount_cents", flat=True)), [2500, 3500])
        self.assertEqual(set(entries.values_list("kind", flat=True)), {LedgerEntry.Kind.PAYMENT})

    def test_overpayment_is_capped_in_balance(self):
        updated = PaymentLedgerService.record_payment(self.installment.pk, 9000)
        self.assertEqual(updated.status, Installment.Status.PAID)
        self.assertEqual(updated.amount_paid_cents, 9000)
        self.assertEqual(updated.outstanding_cents, 0)

        summary = PaymentStatusService(as_of=date(2026, 2, 10)).for_apartment(self.apartment_a.pk)
        self.assertEqual(summary.balance_cents, 6000)
        self.assertEqual(summary.total_paid_cents, 6000)

    def test_zero_amount_is_a_no_change_entry(self):
        updated = PaymentLedgerService.record_payment(self.installment.pk, 0)
        self.assertEqual(updated.amount_paid_cents, 0)
        self.assertEqual(updated.status, Installment.Status.PENDING)

    def test_unknown_installment(self):
        with self.assertRaises(InstallmentNotFoundError):
            PaymentLedgerService.record_payment(999999, 100)
        with self.assertRaises(ObjectDoesNotExist):
            PaymentLedgerService.record_payment(999999, 100)

    def test_invalid_amounts_change_nothing(self):
        for amount in (-1, Decimal("10.5"), "100", True):
            with self.subTest(amount=amount), self.assertRaises(InvalidPaymentError):
                PaymentLedgerService.record_payment(self.installment.pk, amount)

        self.installment.refresh_from_db()
        self.assertEqual(self.installment.amount_paid_cents, 0)
        self.assertFalse(LedgerEntry.objects.exists())

    def test_payment_is_attributed_in_history(self):
        PaymentLedgerService.record_payment(self.installment.pk, 6000, user=self.manager)

        self.installment.refresh_from_db()
        self.assertEqual(self.installment.updated_by, self.manager)
        record = self.installment.history.get()
        self.assertEqual(record.history_type, "~")
        self.assertEqual(record.history_user, self.manager)
        self.assertEqual(record.amount_paid_cents, 6000)

    def test_locks_row_before_incrementing(self):
        with patch.object(
            Installment.objects,
            "select_for_update",
            wraps=Installment.objects.select_for_update,
        ) as select_for_update:
            PaymentLedgerService.record_payment(self.installment.pk, 1000)

        select_for_update.assert_called_once_with()
        self.installment.refresh_from_db()
        self.assertEqual(self.installment.amount_paid_cents, 1000)

    def test_logs_payment(self):
        with self.assertLogs("condominium.services.ledger", level="INFO") as logs:
            PaymentLedgerService.record_payment(self.installment.pk, 1000)
        self.assertIn("pending -> partial", logs.output[0])


class BulkStatusTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()
        self.range = MonthRange.from_months((2026, 1), (2026, 4))

    def test_mark_range_paid_settles_apartment(self):
        status = PaymentStatusService(as_of=date(2026, 4, 20))
        before = status.for_apartment(self.apartment_a.pk)
        self.assertEqual(before.balance_cents, 24000)
        self.assertEqual(before.overdue_count, 3)

        changed = PaymentLedgerService.bulk_set_status(
            self.apartment_a.pk,
            self.project.pk,
            self.range,
            Installment.Status.PAID,
            user=self.manager,
        )
        self.assertEqual(changed, 4)

        after = status.for_apartment(self.apartment_a.pk)
        self.assertEqual(after.balance_cents, 0)
        self.assertEqual(after.overdue_count, 0)
        self.assertEqual(after.level, "ok")

        rows = self.project.installments.filter(apartment=self.apartment_a)
        self.assertEqual(rows.filter(status=Installment.Status.PAID).count(), 4)
        self.assertEqual(rows.filter(status=Installment.Status.PENDING).count(), 8)
        self.assertEqual(
            list(
                LedgerEntry.objects.filter(kind=LedgerEntry.Kind.OVERRIDE).values_list("amount_cents", flat=True)
            ),
            [6000] * 4,
        )

    def test_reverting_to_pending_restores_balance(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_a, 2).pk, 2000)
        PaymentLedgerService.bulk_set_status(self.apartment_a.pk, self.project.pk, self.range, Installment.Status.PAID)

        changed = PaymentLedgerService.bulk_set_status(
            self.apartment_a.pk,
            self.project.pk,
            self.range,
            Installment.Status.PENDING,
        )
        self.assertEqual(changed, 4)

        summary = PaymentStatusService(as_of=date(2026, 4, 20)).for_apartment(self.apartment_a.pk)
        self.assertEqual(summary.balance_cents, 24000)
        self.assertEqual(summary.overdue_count, 3)
        second = self._installment(self.project, self.apartment_a, 2)
        self.assertEqual(second.amount_paid_cents, 0)
        self.assertIsNone(second.paid_at)

    def test_failed_bulk_update_leaves_no_partial_writes(self):
        second = self._installment(self.project, self.apartment_a, 2)
        PaymentLedgerService.record_payment(second.pk, 2000)
        create_entry = LedgerEntry.objects.create
        calls = []

        def fail_on_second_entry(**kwargs):
            calls.append(kwargs)
            if len(calls) == 2:
                raise RuntimeError("database unavailable")
            return create_entry(**kwargs)

        with patch.object(LedgerEntry.objects, "create", side_effect=fail_on_second_entry):
            with self.assertRaises(RuntimeError):
                PaymentLedgerService.bulk_set_status(
                    self.apartment_a.pk,
                    self.project.pk,
                    self.range,
                    Installment.Status.PAID,
                )

        self.assertEqual(len(calls), 2)
        rows = {
            row.installment_number: (row.amount_paid_cents, row.status)
            for row in self.project.installments.filter(apartment=self.apartment_a, installment_number__lte=4)
        }
        self.assertEqual(
            rows,
            {
                1: (0, Installment.Status.PENDING),
                2: (2000, Installment.Status.PARTIAL),
                3: (0, Installment.Status.PENDING),
                4: (0, Installment.Status.PENDING),
            },
        )
        self.assertEqual(LedgerEntry.objects.count(), 1)

    def test_repeating_is_a_no_op(self):
        PaymentLedgerService.bulk_set_status(self.apartment_a.pk, self.project.pk, self.range, Installment.Status.PAID)
        changed = PaymentLedgerService.bulk_set_status(
            self.apartment_a.pk,
            self.project.pk,
            self.range,
            Installment.Status.PAID,
        )
        self.assertEqual(changed, 0)
        self.assertEqual(LedgerEntry.objects.count(), 4)

    def test_other_apartments_untouched(self):
        PaymentLedgerService.bulk_set_status(self.apartment_a.pk, self.project.pk, self.range, Installment.Status.PAID)
        self.assertFalse(
            self.project.installments.filter(apartment=self.apartment_b, amount_paid_cents__gt=0).exists()
        )

    def test_rejects_partial_and_late(self):
        for status in (Installment.Status.PARTIAL, Installment.Status.LATE, "settled"):
            with self.subTest(status=status), self.assertRaises(InvalidPaymentError):
                PaymentLedgerService.bulk_set_status(self.apartment_a.pk, self.project.pk, self.range, status)

    def test_unknown_references(self):
        with self.assertRaises(ProjectNotFoundError):
            PaymentLedgerService.bulk_set_status(self.apartment_a.pk, 99999, self.range, Installment.Status.PAID)
        with self.assertRaises(ApartmentNotFoundError):
            PaymentLedgerService.bulk_set_status(99999, self.project.pk, self.range, Installment.Status.PAID)

    def test_single_month_range(self):
        changed = PaymentLedgerService.bulk_set_status(
            self.apartment_b.pk,
            self.project.pk,
            MonthRange.single(2026, 3),
            Installment.Status.PAID,
        )
        self.assertEqual(changed, 1)
        self.assertEqual(self._installment(self.project, self.apartment_b, 3).amount_paid_cents, 4000)


class SetPaymentStatusTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()
        self.installment = self._installment(self.project, self.apartment_a, 1)

    def test_partial_with_amount(self):
        updated = PaymentLedgerService.set_payment_status(
            self.installment.pk,
            Installment.Status.PARTIAL,
            paid_amount_cents=1500,
            notes="Transferência parcial",
        )
        self.assertEqual(updated.status, Installment.Status.PARTIAL)
        self.assertEqual(updated.amount_paid_cents, 1500)
        self.assertEqual(updated.notes, "Transferência parcial")

    def test_partial_amount_must_be_below_due(self):
        for amount in (None, 0, 6000):
            with self.subTest(amount=amount), self.assertRaises(InvalidPaymentError):
                PaymentLedgerService.set_payment_status(
                    self.installment.pk,
                    Installment.Status.PARTIAL,
                    paid_amount_cents=amount,
                )

    def test_paid_then_pending(self):
        PaymentLedgerService.set_payment_status(self.installment.pk, Installment.Status.PAID)
        updated = PaymentLedgerService.set_payment_status(self.installment.pk, Installment.Status.PENDING)
        self.assertEqual(updated.amount_paid_cents, 0)
        self.assertEqual(
            list(LedgerEntry.objects.order_by("id").values_list("amount_cents", flat=True)),
            [6000, -6000],
        )

    def test_paid_amount_below_due_is_rejected(self):
        for amount in (0, 1, 5999):
            with self.subTest(amount=amount), self.assertRaises(InvalidPaymentError) as ctx:
                PaymentLedgerService.set_payment_status(
                    self.installment.pk,
                    Installment.Status.PAID,
                    paid_amount_cents=amount,
                )
            self.assertEqual(ctx.exception.code, "invalid_paid_amount")

        self.installment.refresh_from_db()
        self.assertEqual(self.installment.amount_paid_cents, 0)
        self.assertEqual(self.installment.status, Installment.Status.PENDING)
        self.assertFalse(LedgerEntry.objects.exists())

    def test_paid_with_explicit_amount(self):
        updated = PaymentLedgerService.set_payment_status(
            self.installment.pk,
            Installment.Status.PAID,
            paid_amount_cents=6500,
        )
        self.assertEqual(updated.status, Installment.Status.PAID)
        self.assertEqual(updated.amount_paid_cents, 6500)

    def test_late_cannot_be_set(self):
        with self.assertRaises(InvalidPaymentError):
            PaymentLedgerService.set_payment_status(self.installment.pk, Installment.Status.LATE)

    def test_late_is_never_stored(self):
        self.installment.status = Installment.Status.LATE
        with self.assertRaises(ValidationError):
            self.installment.full_clean()


class PaymentStatusSummaryTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()

    def test_apartment_summary(self):
        summary = get_status_summary("apartment", self.apartment_a.pk, date(2026, 4, 10))
        self.assertEqual(summary.scope, "apartment")
        self.assertEqual(summary.as_of, "2026-04-10")
        self.assertEqual(summary.balance_cents, 24000)
        self.assertEqual(summary.overdue_count, 3)
        self.assertEqual(summary.active_project_count, 1)
        self.assertEqual(summary.total_due_cents, 24000)
        self.assertEqual(summary.level, "critical")

    def test_current_month_is_not_overdue(self):
        summary = get_status_summary("apartment", self.apartment_a.pk, date(2026, 1, 31))
        self.assertEqual(summary.balance_cents, 6000)
        self.assertEqual(summary.overdue_count, 0)
        self.assertEqual(summary.level, "warning")

    def test_payment_reduces_balance(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_a, 1).pk, 6000)
        summary = get_status_summary("apartment", self.apartment_a.pk, date(2026, 4, 10))
        self.assertEqual(summary.balance_cents, 18000)
        self.assertEqual(summary.overdue_count, 2)
        self.assertEqual(summary.total_paid_cents, 6000)

    def test_zero_permillage_apartment_is_clear(self):
        summary = get_status_summary("apartment", self.storage.pk, date(2026, 12, 31))
        self.assertEqual(summary.balance_cents, 0)
        self.assertEqual(summary.overdue_count, 0)
        self.assertEqual(summary.active_project_count, 1)
        self.assertEqual(summary.level, "ok")

    def test_building_summary(self):
        as_of = timezone.make_aware(datetime(2026, 2, 15, 12, 0))
        summary = get_status_summary("building", self.building.pk, as_of)
        self.assertEqual(summary.balance_cents, 20000)
        self.assertEqual(summary.overdue_count, 2)
        self.assertEqual(summary.active_project_count, 1)
        self.assertEqual(summary.level, "warning")
        self.assertEqual(
            summary.to_dict(),
            {
                "scope": "building",
                "scope_id": self.building.pk,
                "as_of": "2026-02-15",
                "balance_cents": 20000,
                "overdue_count": 2,
                "active_project_count": 1,
                "total_due_cents": 20000,
                "total_paid_cents": 0,
                "level": "warning",
            },
        )

    def test_archived_projects_are_excluded(self):
        self.service.archive_project(self.project.pk)
        summary = get_status_summary("building", self.building.pk, date(2026, 6, 1))
        self.assertEqual(summary.balance_cents, 0)
        self.assertEqual(summary.active_project_count, 0)

    def test_multiple_projects_add_up(self):
        self._create_project(name="Elevador", total_budget_cents=60000, installment_count=6)
        summary = get_status_summary("apartment", self.apartment_b.pk, date(2026, 2, 1))
        # 4000 per project in January and February
        self.assertEqual(summary.balance_cents, 16000)
        self.assertEqual(summary.overdue_count, 2)
        self.assertEqual(summary.active_project_count, 2)

    def test_thresholds_are_configurable(self):
        with self.settings(CONDOMINIUM_STATUS_WARNING_MAX_OVERDUE=5):
            summary = get_status_summary("apartment", self.apartment_a.pk, date(2026, 4, 10))
        self.assertEqual(summary.level, "warning")

    def test_unknown_scope_and_ids(self):
        with self.assertRaises(LedgerValidationError):
            get_status_summary("street", self.building.pk)
        with self.assertRaises(ApartmentNotFoundError):
            get_status_summary("apartment", 99999)
        with self.assertRaises(BuildingNotFoundError):
            get_status_summary("building", 99999)


class ProjectUpdateTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()

    def test_reschedules_before_first_payment(self):
        self.service.update_project(self.project.pk, installment_count=6, start_month=3)

        rows = self.project.installments.filter(apartment=self.apartment_a).order_by("installment_number")
        self.assertEqual(list(rows.values_list("amount_due_cents", flat=True)), [12000] * 6)
        self.assertEqual((rows.first().due_year, rows.first().due_month), (2026, 3))
        self.assertEqual(self.project.installments.count(), 18)

    def test_reschedule_uses_permillage_snapshot(self):
        self.apartment_a.permillage = Decimal("100")
        self.apartment_a.save()

        self.service.update_project(self.project.pk, total_budget_cents=240000)

        share = ApartmentShare.objects.get(project=self.project, apartment=self.apartment_a)
        self.assertEqual(share.total_share_cents, 144000)

    def test_financial_change_rejected_after_payment(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_b, 1).pk, 100)
        self.assertTrue(self.project.is_locked)

        with self.assertRaises(ProjectLockedError):
            self.service.update_project(self.project.pk, total_budget_cents=200000)

        self.project.refresh_from_db()
        self.assertEqual(self.project.total_budget_cents, 120000)

    def test_descriptive_change_allowed_after_payment(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_b, 1).pk, 100)
        updated = self.service.update_project(self.project.pk, name="Fachada norte", description=" Andaimes ")
        self.assertEqual(updated.name, "Fachada norte")
        self.assertEqual(updated.description, "Andaimes")
        self.assertEqual(self.project.installments.count(), 36)

    def test_rename_project_outside_start_year_window(self):
        old = ExtraordinaryProjectService(today=date(2020, 1, 1)).create_project(
            building_id=self.building.pk,
            name="Telhado",
            total_budget_cents=50000,
            start_month=3,
            start_year=2016,
            installment_count=6,
        )

        renamed = self.service.update_project(old.pk, name="Telhado e caleiras", status="archived")

        self.assertEqual(renamed.name, "Telhado e caleiras")
        self.assertEqual(renamed.status, ExtraordinaryProject.Status.ARCHIVED)
        with self.assertRaises(ProjectValidationError):
            self.service.update_project(old.pk, start_month=4)

    def test_rename_still_requires_a_valid_name(self):
        with self.assertRaises(ProjectValidationError):
            self.service.update_project(self.project.pk, name=" x ")
        self.project.refresh_from_db()
        self.assertEqual(self.project.name, "Fachada")

    def test_unchanged_financial_values_are_not_a_change(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_b, 1).pk, 100)
        self.service.update_project(self.project.pk, total_budget_cents=120000)

    def test_rejects_unknown_fields_and_status(self):
        with self.assertRaises(ProjectValidationError):
            self.service.update_project(self.project.pk, building_id=123)
        with self.assertRaises(ProjectValidationError):
            self.service.update_project(self.project.pk, status="closed")
        with self.assertRaises(ProjectValidationError):
            self.service.update_project(self.project.pk, installment_count=0)

    def test_unknown_project(self):
        with self.assertRaises(ProjectNotFoundError):
            self.service.update_project(99999, name="Telhado")

    def test_archive_is_recorded_in_history(self):
        self.service.archive_project(self.project.pk)
        self.assertEqual(
            list(self.project.history.order_by("history_id").values_list("status", flat=True)),
            ["active", "archived"],
        )

    def test_delete_cascades(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_a, 1).pk, 6000)

        self.service.delete_project(self.project.pk)

        self.assertFalse(ExtraordinaryProject.objects.filter(pk=self.project.pk).exists())
        self.assertFalse(Installment.objects.exists())
        self.assertFalse(ApartmentShare.objects.exists())
        self.assertFalse(LedgerEntry.objects.exists())
        self.assertTrue(Apartment.objects.filter(pk=self.apartment_a.pk).exists())


class ProjectReadTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()

    def test_list_projects_reports_progress(self):
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_a, 1).pk, 6000)
        hidden = self._create_project(name="Telhado")
        self.service.update_project(hidden.pk, status=ExtraordinaryProject.Status.DELETED)

        items = self.service.list_projects(self.building.pk)

        self.assertEqual([item.id for item in items], [self.project.pk])
        self.assertEqual(items[0].total_collected_cents, 6000)
        self.assertEqual(items[0].progress_percent, 5)

    def test_project_detail(self):
        service = ExtraordinaryProjectService(today=date(2026, 3, 10))
        PaymentLedgerService.record_payment(self._installment(self.project, self.apartment_b, 2).pk, 1000)

        detail = service.project_detail(self.project.pk)

        self.assertEqual([entry.unit for entry in detail.apartments], ["1A", "1B", "Cave"])
        apartment_a, apartment_b, storage = detail.apartments
        self.assertEqual(apartment_a.resident_name, "Ana Costa")
        self.assertEqual(apartment_a.installments[0].status, Installment.Status.LATE)
        self.assertEqual(apartment_a.installments[2].status, Installment.Status.PENDING)
        self.assertEqual(apartment_a.status, "pending")
        self.assertEqual(apartment_b.installments[1].status, Installment.Status.PARTIAL)
        self.assertEqual(apartment_b.status, "partial")
        self.assertEqual(apartment_b.balance_cents, 47000)
        self.assertEqual(storage.status, "complete")

        self.assertEqual(detail.stats.total_expected_cents, 120000)
        self.assertEqual(detail.stats.total_paid_cents, 1000)
        self.assertEqual(detail.stats.progress_percent, 1)
        self.assertEqual(detail.stats.apartments_completed, 1)
        self.assertEqual(detail.stats.apartments_total, 3)

    def test_apartment_projects(self):
        payments = self.service.apartment_projects(self.apartment_b.pk)
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0].project_name, "Fachada")
        self.assertEqual(payments[0].payments.total_share_cents, 48000)
        self.assertEqual(payments[0].payments.permillage, Decimal("400.000"))
        self.assertEqual(len(payments[0].payments.installments), 12)

    def test_apartment_projects_as_of(self):
        payments = self.service.apartment_projects(self.apartment_b.pk, as_of=date(2026, 5, 2))
        statuses = [row.status for row in payments[0].payments.installments[:5]]
        self.assertEqual(statuses, ["late", "late", "late", "late", "pending"])

    def test_apartment_projects_unknown_apartment(self):
        with self.assertRaises(ApartmentNotFoundError):
            self.service.apartment_projects(99999)

    def test_unknown_project_detail(self):
        with self.assertRaises(ProjectNotFoundError):
            self.service.project_detail(99999)


class AdminActionTests(CondominiumFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.project = self._create_project()
        self.request = RequestFactory().post("/admin/")
        self.request.user = self.manager

    def test_mark_paid_action(self):
        model_admin = InstallmentAdmin(Installment, admin.site)
        queryset = Installment.objects.filter(project=self.project, apartment=self.apartment_a, due_month__lte=2)

        with patch.object(InstallmentAdmin, "message_user") as message_user:
            model_admin.mark_paid(self.request, queryset)

        message_user.assert_called_once_with(self.request, "2 installment(s) updated.", level=messages.SUCCESS)
        self.assertEqual(
            set(queryset.values_list("status", flat=True)),
            {Installment.Status.PAID},
        )
        self.assertEqual(set(queryset.values_list("updated_by", flat=True)), {self.manager.pk})

    def test_mark_pending_without_changes_warns(self):
        model_admin = InstallmentAdmin(Installment, admin.site)
        queryset = Installment.objects.filter(project=self.project, apartment=self.apartment_b)

        with patch.object(InstallmentAdmin, "message_user") as message_user:
            model_admin.mark_pending(self.request, queryset)

        message_user.assert_called_once_with(self.request, "No installments changed.", level=messages.WARNING)

    def test_money_columns_are_formatted(self):
        installment = self._installment(self.project, self.apartment_a, 1)
        PaymentLedgerService.record_payment(installment.pk, 2550)
        installment.refresh_from_db()

        installment_admin = InstallmentAdmin(Installment, admin.site)
        project_admin = ExtraordinaryProjectAdmin(ExtraordinaryProject, admin.site)

        self.assertIn("amount_due_display", installment_admin.list_display)
        self.assertEqual(installment_admin.amount_due_display(installment), "60,00 €")
        self.assertEqual(installment_admin.amount_paid_display(installment), "25,50 €")
        self.assertEqual(project_admin.budget_display(self.project), "1.200,00 €")

    def test_archive_action(self):
        model_admin = ExtraordinaryProjectAdmin(ExtraordinaryProject, admin.site)

        with patch.object(ExtraordinaryProjectAdmin, "message_user") as message_user:
            model_admin.archive_selected(self.request, ExtraordinaryProject.objects.all())

        message_user.assert_called_once_with(self.request, "1 project(s) archived.", level=messages.SUCCESS)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, ExtraordinaryProject.Status.ARCHIVED)
