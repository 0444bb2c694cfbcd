from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings

from .exceptions import AllocationConsistencyError, InvalidInstallmentCountError, InvalidShareError
from .services.allocation import (
    ApartmentAllocation,
    ApartmentInput,
    InstallmentPlan,
    ProjectTerms,
    allocate,
    validate_project_input,
)
from .services.installments import MonthRange, add_months, installment_due_month, schedule
from .services.ledger import derive_status, effective_status
from .services.money import format_cents, pro_rate, progress_percent
from .services.status_summary import status_level, summarize_installments


class ProRateTests(SimpleTestCase):
    def test_reference_example_rounds_down(self):
        # 4,577,310 × 16.49 / 1000 = 75,479.84
        self.assertEqual(pro_rate(4577310, Decimal("16.49")), 75479)

    def test_accepts_float_and_string_permillage(self):
        self.assertEqual(pro_rate(4577310, 16.49), 75479)
        self.assertEqual(pro_rate(4577310, "16.49"), 75479)

    def test_full_building_gets_whole_budget(self):
        self.assertEqual(pro_rate(123457, 1000), 123457)

    def test_zero_permillage_is_rejected(self):
        with self.assertRaises(InvalidShareError):
            pro_rate(100000, 0)

    def test_out_of_range_permillage_is_rejected(self):
        for value in (Decimal("-1"), Decimal("1000.001"), "abc", float("nan")):
            with self.subTest(value=value), self.assertRaises(InvalidShareError):
                pro_rate(100000, value)

    def test_negative_total_is_rejected(self):
        with self.assertRaises(InvalidShareError):
            pro_rate(-1, 10)

    def test_share_errors_are_validation_errors(self):
        with self.assertRaises(ValidationError) as ctx:
            pro_rate(100000, 0)
        self.assertIn("Permillage", ctx.exception.reason)

    def test_sum_of_shares_never_exceeds_budget(self):
        permillages = [Decimal("16.49"), Decimal("250.5"), Decimal("333.333"), Decimal("399.677")]
        self.assertEqual(sum(permillages), Decimal("1000"))
        for budget in (1, 999, 100000, 4577310, 98765431):
            with self.subTest(budget=budget):
                total = sum(pro_rate(budget, permillage) for permillage in permillages)
                self.assertLessEqual(total, budget)
                self.assertLess(budget - total, len(permillages))


class ScheduleTests(SimpleTestCase):
    def test_reference_example_puts_remainder_on_last_installment(self):
        amounts = schedule(75479, 12)
        self.assertEqual(amounts, [6289] * 11 + [6300])
        self.assertEqual(sum(amounts), 75479)

    def test_even_split(self):
        self.assertEqual(schedule(1200, 4), [300, 300, 300, 300])

    def test_share_smaller_than_count(self):
        self.assertEqual(schedule(5, 12), [0] * 11 + [5])

    def test_zero_share(self):
        self.assertEqual(schedule(0, 3), [0, 0, 0])

    def test_sum_invariant(self):
        for share in (0, 1, 7, 11, 999, 75479, 1000003):
            for count in range(1, 37):
                amounts = schedule(share, count)
                self.assertEqual(len(amounts), count)
                self.assertEqual(sum(amounts), share)

    def test_count_must_be_positive(self):
        for count in (0, -3):
            with self.subTest(count=count), self.assertRaises(InvalidInstallmentCountError):
                schedule(1000, count)

    def test_negative_share_is_rejected(self):
        with self.assertRaises(InvalidShareError):
            schedule(-1, 3)


class DueMonthTests(SimpleTestCase):
    def test_walks_forward_and_rolls_year(self):
        self.assertEqual(installment_due_month(1, 11, 2025), (2025, 11))
        self.assertEqual(installment_due_month(2, 11, 2025), (2025, 12))
        self.assertEqual(installment_due_month(3, 11, 2025), (2026, 1))
        self.assertEqual(installment_due_month(26, 11, 2025), (2027, 12))

    def test_add_months_clamps_day(self):
        self.assertEqual(add_months(date(2026, 1, 31), 1), date(2026, 2, 28))

    def test_month_range_contains(self):
        month_range = MonthRange.from_months((2025, 11), (2026, 2))
        self.assertTrue(month_range.contains(2025, 11))
        self.assertTrue(month_range.contains(2026, 2))
        self.assertFalse(month_range.contains(2026, 3))
        self.assertFalse(month_range.contains(2025, 10))

    def test_month_range_rejects_reversed_bounds(self):
        with self.assertRaises(ValidationError):
            MonthRange.from_months((2026, 5), (2026, 4))


class AllocateTests(SimpleTestCase):
    def setUp(self):
        self.terms = ProjectTerms(budget_cents=4577310, installment_count=12, start_month=11, start_year=2025)

    def test_reference_apartment(self):
        result = allocate(self.terms, [ApartmentInput(apartment_id=7, permillage=Decimal("16.49"), unit="1º A")])

        self.assertEqual(len(result.apartments), 1)
        apartment = result.apartments[0]
        self.assertEqual(apartment.total_share_cents, 75479)
        self.assertEqual([plan.amount_cents for plan in apartment.installments], [6289] * 11 + [6300])
        self.assertEqual([plan.number for plan in apartment.installments], list(range(1, 13)))
        self.assertEqual(
            (apartment.installments[0].due_year, apartment.installments[0].due_month),
            (2025, 11),
        )
        self.assertEqual(
            (apartment.installments[-1].due_year, apartment.installments[-1].due_month),
            (2026, 10),
        )
        self.assertEqual(apartment.monthly_payment_cents, 6290)

    def test_monthly_payment_rounds_half_up(self):
        plans = [InstallmentPlan(number=n, due_year=2026, due_month=n, amount_cents=0) for n in range(1, 13)]
        for share, expected in ((30, 3), (18, 2), (6, 1), (5, 0)):
            with self.subTest(share=share):
                allocation = ApartmentAllocation(
                    apartment_id=1,
                    unit="1A",
                    permillage=Decimal("1"),
                    total_share_cents=share,
                    installments=plans,
                )
                self.assertEqual(allocation.monthly_payment_cents, expected)

    def test_empty_roster_is_not_an_error(self):
        result = allocate(self.terms, [])
        self.assertEqual(result.apartments, [])
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.total_allocated_cents, 0)

    def test_zero_permillage_apartment_gets_zero_rows(self):
        result = allocate(
            self.terms,
            [
                ApartmentInput(apartment_id=1, permillage=Decimal("1000"), unit="A"),
                ApartmentInput(apartment_id=2, permillage=None, unit="Cave 3"),
            ],
        )
        zero = result.apartments[1]
        self.assertEqual(zero.total_share_cents, 0)
        self.assertEqual(len(zero.installments), 12)
        self.assertTrue(all(plan.amount_cents == 0 for plan in zero.installments))
        self.assertTrue(any("Cave 3" in warning for warning in result.warnings))

    def test_warns_when_total_permillage_is_off(self):
        result = allocate(
            self.terms,
            [
                ApartmentInput(apartment_id=1, permillage=Decimal("400"), unit="A"),
                ApartmentInput(apartment_id=2, permillage=Decimal("500"), unit="B"),
            ],
        )
        self.assertEqual(result.total_permillage, Decimal("900.000"))
        self.assertTrue(any("differs from 1000" in warning for warning in result.warnings))

    def test_no_permillage_warning_within_tolerance(self):
        result = allocate(
            self.terms,
            [
                ApartmentInput(apartment_id=1, permillage=Decimal("600.4"), unit="A"),
                ApartmentInput(apartment_id=2, permillage=Decimal("400"), unit="B"),
            ],
        )
        self.assertEqual(result.warnings, [])

    def test_rows_per_apartment_sum_to_share(self):
        result = allocate(
            ProjectTerms(budget_cents=1000001, installment_count=7, start_month=12, start_year=2026),
            [
                ApartmentInput(apartment_id=index, permillage=permillage)
                for index, permillage in enumerate([Decimal("123.456"), Decimal("376.544"), Decimal("500")], start=1)
            ],
        )
        self.assertEqual(result.installment_count, 21)
        for apartment in result.apartments:
            self.assertEqual(sum(plan.amount_cents for plan in apartment.installments), apartment.total_share_cents)

    def test_schedule_mismatch_raises_consistency_error(self):
        with patch("condominium.services.allocation.schedule", return_value=[1, 1]):
            with self.assertLogs("condominium.services.allocation", level="ERROR"):
                with self.assertRaises(AllocationConsistencyError):
                    allocate(
                        ProjectTerms(budget_cents=1000, installment_count=2, start_month=1, start_year=2026),
                        [ApartmentInput(apartment_id=1, permillage=Decimal("1000"))],
                    )


class ValidateProjectInputTests(SimpleTestCase):
    today = date(2026, 1, 15)

    def _validate(self, **overrides):
        values = {
            "name": "Fachada",
            "budget_cents": 100000,
            "installment_count": 12,
            "start_month": 1,
            "start_year": 2026,
        }
        values.update(overrides)
        return validate_project_input(today=self.today, **values)

    def test_valid_input(self):
        self.assertEqual(self._validate(), [])

    def test_collects_all_errors(self):
        errors = self._validate(name="ab", budget_cents=0, installment_count=37, start_month=13, start_year=2040)
        self.assertEqual(len(errors), 5)

    def test_installment_bounds(self):
        self.assertEqual(self._validate(installment_count=1), [])
        self.assertEqual(self._validate(installment_count=36), [])
        self.assertEqual(len(self._validate(installment_count=0)), 1)

    @override_settings(CONDOMINIUM_MAX_INSTALLMENTS=120)
    def test_installment_limit_is_configurable(self):
        self.assertEqual(self._validate(installment_count=120), [])

    def test_start_year_window(self):
        self.assertEqual(self._validate(start_year=2021), [])
        self.assertEqual(self._validate(start_year=2036), [])
        self.assertEqual(len(self._validate(start_year=2020)), 1)
        self.assertEqual(len(self._validate(start_year=2037)), 1)


class StatusDerivationTests(SimpleTestCase):
    def test_derive_status(self):
        self.assertEqual(derive_status(6289, 0), "pending")
        self.assertEqual(derive_status(6289, 100), "partial")
        self.assertEqual(derive_status(6289, 6289), "paid")
        self.assertEqual(derive_status(6289, 9000), "paid")
        self.assertEqual(derive_status(0, 0), "paid")

    def test_derive_status_is_pure(self):
        self.assertEqual(
            [derive_status(500, 250) for _ in range(3)],
            ["partial", "partial", "partial"],
        )

    def test_current_month_is_pending_not_late(self):
        status = effective_status(amount_due=6289, amount_paid=0, due_year=2026, due_month=3, as_of=date(2026, 3, 31))
        self.assertEqual(status, "pending")

    def test_late_once_due_month_elapsed(self):
        status = effective_status(amount_due=6289, amount_paid=0, due_year=2026, due_month=3, as_of=date(2026, 4, 1))
        self.assertEqual(status, "late")

    def test_partial_and_paid_are_not_reclassified(self):
        as_of = date(2027, 1, 1)
        self.assertEqual(
            effective_status(amount_due=6289, amount_paid=1, due_year=2026, due_month=3, as_of=as_of),
            "partial",
        )
        self.assertEqual(
            effective_status(amount_due=0, amount_paid=0, due_year=2026, due_month=3, as_of=as_of),
            "paid",
        )


class SummarizeInstallmentsTests(SimpleTestCase):
    def test_future_rows_are_ignored(self):
        rows = [(2026, 1, 1000, 0), (2026, 2, 1000, 0), (2026, 3, 1000, 0)]
        totals = summarize_installments(rows, date(2026, 2, 10))
        self.assertEqual(totals.due_cents, 2000)
        self.assertEqual(totals.balance_cents, 2000)
        self.assertEqual(totals.overdue_count, 1)

    def test_overpayment_does_not_create_credit(self):
        rows = [(2026, 1, 1000, 1500), (2026, 2, 1000, 0)]
        totals = summarize_installments(rows, date(2026, 3, 1))
        self.assertEqual(totals.balance_cents, 1000)
        self.assertEqual(totals.paid_cents, 1000)
        self.assertEqual(totals.overdue_count, 1)

    def test_zero_rows_never_overdue(self):
        rows = [(2025, 1, 0, 0), (2025, 2, 0, 0)]
        totals = summarize_installments(rows, date(2026, 3, 1))
        self.assertEqual(totals.balance_cents, 0)
        self.assertEqual(totals.overdue_count, 0)

    def test_status_levels(self):
        self.assertEqual(status_level(balance_cents=0, overdue_count=0), "ok")
        self.assertEqual(status_level(balance_cents=20000, overdue_count=2), "warning")
        self.assertEqual(status_level(balance_cents=50000, overdue_count=1), "critical")
        self.assertEqual(status_level(balance_cents=100, overdue_count=3), "critical")


class MoneyFormattingTests(SimpleTestCase):
    def test_format_cents(self):
        self.assertEqual(format_cents(4577310), "45.773,10 €")
        self.assertEqual(format_cents(5), "0,05 €")

    def test_progress_percent(self):
        self.assertEqual(progress_percent(0, 0), 0)
        self.assertEqual(progress_percent(1, 3), 33)
        self.assertEqual(progress_percent(2, 3), 67)
        self.assertEqual(progress_percent(5000, 1000), 100)
