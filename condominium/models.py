from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords


class Building(models.Model):
    name = models.CharField(max_length=255, verbose_name=_("Name"))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created at"))

    class Meta:
        verbose_name = _("Building")
        verbose_name_plural = _("Buildings")
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class Apartment(models.Model):
    building = models.ForeignKey(
        Building,
        on_delete=models.CASCADE,
        related_name="apartments",
        verbose_name=_("Building"),
    )
    unit = models.CharField(
        max_length=50,
        verbose_name=_("Unit"),
        help_text=_("Free-form label, e.g. \"R/C Esq\" or \"1º A\"."),
    )
    permillage = models.DecimalField(
        max_digits=7,
        decimal_places=3,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1000"))],
        verbose_name=_("Permillage (‰)"),
        help_text=_("Ownership share in parts per thousand of the building."),
    )
    resident = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="apartments",
        verbose_name=_("Resident"),
    )

    class Meta:
        verbose_name = _("Apartment")
        verbose_name_plural = _("Apartments")
        ordering = ["building_id", "unit", "id"]

    def __str__(self) -> str:
        return f"{self.unit} ({self.building.name})"


class ExtraordinaryProject(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        ARCHIVED = "archived", _("Archived")
        DELETED = "deleted", _("Deleted")

    building = models.ForeignKey(
        Building,
        on_delete=models.CASCADE,
        related_name="extraordinary_projects",
        verbose_name=_("Building"),
    )
    name = models.CharField(max_length=255, verbose_name=_("Name"))
    description = models.TextField(blank=True, verbose_name=_("Description"))
    total_budget_cents = models.PositiveBigIntegerField(
        validators=[MinValueValidator(1)],
        verbose_name=_("Total budget (cents)"),
    )
    installment_count = models.PositiveSmallIntegerField(
        default=12,
        validators=[MinValueValidator(1), MaxValueValidator(36)],
        verbose_name=_("Installments"),
    )
    start_month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_("Start month"),
    )
    start_year = models.PositiveSmallIntegerField(verbose_name=_("Start year"))
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
        verbose_name=_("Status"),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated at"))
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Created by"),
    )
    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Extraordinary project")
        verbose_name_plural = _("Extraordinary projects")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["building", "status"], name="condominium_buildin_0b7a2e_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.building.name})"

    @property
    def is_locked(self) -> bool:
        return self.installments.filter(amount_paid_cents__gt=0).exists()


class ApartmentShare(models.Model):
    project = models.ForeignKey(
        ExtraordinaryProject,
        on_delete=models.CASCADE,
        related_name="shares",
        verbose_name=_("Project"),
    )
    apartment = models.ForeignKey(
        Apartment,
        on_delete=models.CASCADE,
        related_name="extraordinary_shares",
        verbose_name=_("Apartment"),
    )
    permillage = models.DecimalField(
        max_digits=7,
        decimal_places=3,
        verbose_name=_("Permillage (‰)"),
        help_text=_("Snapshot taken when the project was created."),
    )
    total_share_cents = models.PositiveBigIntegerField(verbose_name=_("Total share (cents)"))

    class Meta:
        verbose_name = _("Apartment share")
        verbose_name_plural = _("Apartment shares")
        ordering = ["project_id", "apartment__unit", "apartment_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "apartment"],
                name="uniq_share_project_apartment",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.project.name} · {self.apartment.unit} · {self.permillage}‰"


class Installment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PARTIAL = "partial", _("Partial")
        PAID = "paid", _("Paid")
        LATE = "late", _("Late")

    project = models.ForeignKey(
        ExtraordinaryProject,
        on_delete=models.CASCADE,
        related_name="installments",
        verbose_name=_("Project"),
    )
    apartment = models.ForeignKey(
        Apartment,
        on_delete=models.CASCADE,
        related_name="installments",
        verbose_name=_("Apartment"),
    )
    installment_number = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1)],
        verbose_name=_("Installment"),
    )
    due_month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_("Due month"),
    )
    due_year = models.PositiveSmallIntegerField(verbose_name=_("Due year"))
    amount_due_cents = models.PositiveBigIntegerField(verbose_name=_("Amount due (cents)"))
    amount_paid_cents = models.PositiveBigIntegerField(default=0, verbose_name=_("Amount paid (cents)"))
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
        verbose_name=_("Status"),
        help_text=_("Derived from the amounts; late is only computed at read time."),
    )
    paid_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Paid at"))
    payment_method = models.CharField(max_length=50, blank=True, verbose_name=_("Payment method"))
    notes = models.TextField(blank=True, verbose_name=_("Notes"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated at"))
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Updated by"),
    )
    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Installment")
        verbose_name_plural = _("Installments")
        ordering = ["project_id", "apartment__unit", "apartment_id", "installment_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "apartment", "installment_number"],
                name="uniq_installment_project_apartment_number",
            ),
        ]
        indexes = [
            models.Index(fields=["apartment", "due_year", "due_month"], name="condominium_apartme_5c1f3d_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.project.name} · {self.apartment.unit} · {self.installment_number:02d} ({self.due_month:02d}/{self.due_year})"

    @property
    def due_date(self) -> date:
        return date(self.due_year, self.due_month, 1)

    @property
    def outstanding_cents(self) -> int:
        return max(0, self.amount_due_cents - self.amount_paid_cents)

    def status_as_of(self, as_of: date) -> str:
        from condominium.services.ledger import effective_status

        return effective_status(
            amount_due=self.amount_due_cents,
            amount_paid=self.amount_paid_cents,
            due_year=self.due_year,
            due_month=self.due_month,
            as_of=as_of,
        )

    def clean(self):
        super().clean()
        if self.status == self.Status.LATE:
            raise ValidationError(
                {"status": _("Late is computed from the due month and cannot be stored.")}
            )


class LedgerEntry(models.Model):
    class Kind(models.TextChoices):
        PAYMENT = "payment", _("Payment")
        OVERRIDE = "override", _("Manager correction")

    installment = models.ForeignKey(
        Installment,
        on_delete=models.CASCADE,
        related_name="ledger_entries",
        verbose_name=_("Installment"),
    )
    kind = models.CharField(max_length=10, choices=Kind.choices, verbose_name=_("Kind"))
    amount_cents = models.BigIntegerField(
        verbose_name=_("Amount (cents)"),
        help_text=_("Change applied to the paid amount; negative for corrections that reset it."),
    )
    recorded_at = models.DateTimeField(verbose_name=_("Recorded at"))
    payment_method = models.CharField(max_length=50, blank=True, verbose_name=_("Payment method"))
    notes = models.TextField(blank=True, verbose_name=_("Notes"))
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Created by"),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created at"))

    class Meta:
        verbose_name = _("Ledger entry")
        verbose_name_plural = _("Ledger entries")
        ordering = ["-recorded_at", "-id"]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} · {self.installment_id} · {self.amount_cents}"
