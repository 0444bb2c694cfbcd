from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from condominium.exceptions import (
    ApartmentNotFoundError,
    BuildingNotFoundError,
    ProjectLockedError,
    ProjectNotFoundError,
    ProjectValidationError,
)
from condominium.models import Apartment, ApartmentShare, Building, ExtraordinaryProject, Installment
from condominium.services.allocation import (
    AllocationResult,
    ApartmentInput,
    ProjectTerms,
    allocate,
    default_installments,
    validate_project_input,
    validate_project_name,
)
from condominium.services.ledger import derive_status
from condominium.services.money import progress_percent

logger = logging.getLogger(__name__)

FINANCIAL_FIELDS = ("total_budget_cents", "installment_count", "start_month", "start_year")


@dataclass(slots=True)
class ProjectListItem:
    id: int
    name: str
    total_budget_cents: int
    installment_count: int
    start_month: int
    start_year: int
    status: str
    total_collected_cents: int
    progress_percent: int


@dataclass(slots=True)
class InstallmentRow:
    id: int
    number: int
    due_month: int
    due_year: int
    amount_due_cents: int
    amount_paid_cents: int
    status: str


@dataclass(slots=True)
class ApartmentPayments:
    apartment_id: int
    unit: str
    resident_name: str | None
    permillage: Decimal
    total_share_cents: int = 0
    total_paid_cents: int = 0
    installments: list[InstallmentRow] = field(default_factory=list)

    @property
    def balance_cents(self) -> int:
        return max(0, self.total_share_cents - self.total_paid_cents)

    @property
    def status(self) -> str:
        if all(row.status == Installment.Status.PAID for row in self.installments):
            return "complete"
        if any(row.status in (Installment.Status.PAID, Installment.Status.PARTIAL) for row in self.installments):
            return "partial"
        return "pending"


@dataclass(slots=True)
class ProjectStats:
    total_expected_cents: int
    total_paid_cents: int
    progress_percent: int
    apartments_completed: int
    apartments_total: int


@dataclass(slots=True)
class ProjectDetail:
    project: ExtraordinaryProject
    apartments: list[ApartmentPayments]
    stats: ProjectStats


@dataclass(slots=True)
class ResidentProjectPayments:
    project_id: int
    project_name: str
    project_status: str
    installment_count: int
    start_month: int
    start_year: int
    payments: ApartmentPayments


def _get_project(project_id: int, *, for_update: bool = False) -> ExtraordinaryProject:
    if for_update:
        queryset = ExtraordinaryProject.objects.select_for_update()
    else:
        queryset = ExtraordinaryProject.objects.select_related("building")
    try:
        return queryset.get(pk=project_id)
    except ExtraordinaryProject.DoesNotExist as exc:
        raise ProjectNotFoundError(f"Project {project_id} does not exist.") from exc


def _terms(project: ExtraordinaryProject) -> ProjectTerms:
    return ProjectTerms(
        budget_cents=project.total_budget_cents,
        installment_count=project.installment_count,
        start_month=project.start_month,
        start_year=project.start_year,
    )


def _resident_name(apartment: Apartment) -> str | None:
    resident = apartment.resident
    if resident is None:
        return None
    return resident.get_full_name() or resident.get_username()


class ExtraordinaryProjectService:
    def __init__(self, *, today: date | None = None):
        self.today = today or timezone.localdate()

    def _validate(self, *, name: str, terms: ProjectTerms) -> None:
        errors = validate_project_input(
            name=name,
            budget_cents=terms.budget_cents,
            installment_count=terms.installment_count,
            start_month=terms.start_month,
            start_year=terms.start_year,
            today=self.today,
        )
        if errors:
            raise ProjectValidationError(errors, code="invalid_project")

    @staticmethod
    def _persist_schedule(project: ExtraordinaryProject, allocation: AllocationResult) -> None:
        ApartmentShare.objects.bulk_create(
            [
                ApartmentShare(
                    project=project,
                    apartment_id=apartment.apartment_id,
                    permillage=apartment.permillage,
                    total_share_cents=apartment.total_share_cents,
                )
                for apartment in allocation.apartments
            ]
        )
        Installment.objects.bulk_create(
            [
                Installment(
                    project=project,
                    apartment_id=apartment.apartment_id,
                    installment_number=plan.number,
                    due_month=plan.due_month,
                    due_year=plan.due_year,
                    amount_due_cents=plan.amount_cents,
                    amount_paid_cents=0,
                    status=derive_status(plan.amount_cents, 0),
                )
                for apartment in allocation.apartments
                for plan in apartment.installments
            ]
        )

    def preview(self, *, building_id: int, terms: ProjectTerms) -> AllocationResult:
        if not Building.objects.filter(pk=building_id).exists():
            raise BuildingNotFoundError(f"Building {building_id} does not exist.")
        apartments = Apartment.objects.filter(building_id=building_id).order_by("unit", "id")
        return allocate(
            terms,
            [
                ApartmentInput(apartment_id=apartment.pk, permillage=apartment.permillage, unit=apartment.unit)
                for apartment in apartments
            ],
        )

    @transaction.atomic
    def create_project(
        self,
        *,
        building_id: int,
        name: str,
        total_budget_cents: int,
        start_month: int,
        start_year: int,
        installment_count: int | None = None,
        description: str = "",
        created_by=None,
    ) -> ExtraordinaryProject:
        terms = ProjectTerms(
            budget_cents=total_budget_cents,
            installment_count=installment_count if installment_count is not None else default_installments(),
            start_month=start_month,
            start_year=start_year,
        )
        self._validate(name=name, terms=terms)
        allocation = self.preview(building_id=building_id, terms=terms)

        project = ExtraordinaryProject.objects.create(
            building_id=building_id,
            name=name.strip(),
            description=(description or "").strip(),
            total_budget_cents=terms.budget_cents,
            installment_count=terms.installment_count,
            start_month=terms.start_month,
            start_year=terms.start_year,
            status=ExtraordinaryProject.Status.ACTIVE,
            created_by=created_by,
        )
        self._persist_schedule(project, allocation)

        for warning in allocation.warnings:
            logger.warning("Project %s: %s", project.pk, warning)
        logger.info(
            "Created project %s for building %s: %s cents over %s installment(s), %s apartment(s).",
            project.pk,
            building_id,
            terms.budget_cents,
            terms.installment_count,
            len(allocation.apartments),
        )
        return project

    @transaction.atomic
    def update_project(self, project_id: int, **changes) -> ExtraordinaryProject:
        project = _get_project(project_id, for_update=True)
        unknown = set(changes) - {"name", "description", "status", *FINANCIAL_FIELDS}
        if unknown:
            raise ProjectValidationError(
                f"Unknown project field(s): {', '.join(sorted(unknown))}.",
                code="unknown_field",
            )

        if "status" in changes and changes["status"] not in ExtraordinaryProject.Status.values:
            raise ProjectValidationError(f"Unknown project status {changes['status']!r}.", code="invalid_status")

        financial_changes = {
            key: value for key, value in changes.items() if key in FINANCIAL_FIELDS and getattr(project, key) != value
        }
        name = changes.get("name", project.name)
        terms = ProjectTerms(
            budget_cents=financial_changes.get("total_budget_cents", project.total_budget_cents),
            installment_count=financial_changes.get("installment_count", project.installment_count),
            start_month=financial_changes.get("start_month", project.start_month),
            start_year=financial_changes.get("start_year", project.start_year),
        )
        if financial_changes:
            self._validate(name=name, terms=terms)
        elif "name" in changes:
            errors = validate_project_name(name)
            if errors:
                raise ProjectValidationError(errors, code="invalid_project")
        if financial_changes and project.is_locked:
            raise ProjectLockedError(
                "Budget and schedule cannot change once a payment has been recorded.",
                code="project_locked",
            )

        project.name = (name or "").strip()
        if "description" in changes:
            project.description = (changes["description"] or "").strip()
        if "status" in changes:
            project.status = changes["status"]
        for key, value in financial_changes.items():
            setattr(project, key, value)
        project.save()

        if financial_changes:
            self._reschedule(project)
        return project

    def _reschedule(self, project: ExtraordinaryProject) -> None:
        shares = list(project.shares.select_related("apartment").order_by("apartment__unit", "apartment_id"))
        allocation = allocate(
            _terms(project),
            [
                ApartmentInput(apartment_id=share.apartment_id, permillage=share.permillage, unit=share.apartment.unit)
                for share in shares
            ],
        )
        project.installments.all().delete()
        project.shares.all().delete()
        self._persist_schedule(project, allocation)
        logger.info(
            "Rescheduled project %s: %s installment(s) regenerated from the permillage snapshot.",
            project.pk,
            allocation.installment_count,
        )

    def archive_project(self, project_id: int) -> ExtraordinaryProject:
        return self.update_project(project_id, status=ExtraordinaryProject.Status.ARCHIVED)

    @transaction.atomic
    def delete_project(self, project_id: int) -> None:
        project = _get_project(project_id, for_update=True)
        project.delete()
        logger.info("Deleted project %s with all shares, installments and ledger entries.", project_id)

    def list_projects(self, building_id: int) -> list[ProjectListItem]:
        projects = list(
            ExtraordinaryProject.objects.filter(building_id=building_id)
            .exclude(status=ExtraordinaryProject.Status.DELETED)
            .annotate(
                collected=Sum("installments__amount_paid_cents"),
                expected=Sum("installments__amount_due_cents"),
            )
            .order_by("-created_at", "-id")
        )
        return [
            ProjectListItem(
                id=project.pk,
                name=project.name,
                total_budget_cents=project.total_budget_cents,
                installment_count=project.installment_count,
                start_month=project.start_month,
                start_year=project.start_year,
                status=project.status,
                total_collected_cents=int(project.collected or 0),
                progress_percent=progress_percent(int(project.collected or 0), int(project.expected or 0)),
            )
            for project in projects
        ]

    def _apartment_payments(
        self,
        installments,
        *,
        shares: dict[int, ApartmentShare],
        as_of: date,
    ) -> list[ApartmentPayments]:
        grouped: dict[int, ApartmentPayments] = {}
        for installment in installments:
            apartment = installment.apartment
            entry = grouped.get(apartment.pk)
            if entry is None:
                share = shares.get(apartment.pk)
                entry = ApartmentPayments(
                    apartment_id=apartment.pk,
                    unit=apartment.unit,
                    resident_name=_resident_name(apartment),
                    permillage=share.permillage if share else Decimal("0.000"),
                )
                grouped[apartment.pk] = entry
            entry.total_share_cents += installment.amount_due_cents
            entry.total_paid_cents += installment.amount_paid_cents
            entry.installments.append(
                InstallmentRow(
                    id=installment.pk,
                    number=installment.installment_number,
                    due_month=installment.due_month,
                    due_year=installment.due_year,
                    amount_due_cents=installment.amount_due_cents,
                    amount_paid_cents=installment.amount_paid_cents,
                    status=installment.status_as_of(as_of),
                )
            )
        for entry in grouped.values():
            entry.installments.sort(key=lambda row: row.number)
        return sorted(grouped.values(), key=lambda entry: (entry.unit, entry.apartment_id))

    def project_detail(self, project_id: int, as_of: date | None = None) -> ProjectDetail:
        project = _get_project(project_id)
        shares = {share.apartment_id: share for share in project.shares.all()}
        installments = project.installments.select_related("apartment", "apartment__resident")
        apartments = self._apartment_payments(installments, shares=shares, as_of=as_of or self.today)

        total_expected = sum(entry.total_share_cents for entry in apartments)
        total_paid = sum(entry.total_paid_cents for entry in apartments)
        stats = ProjectStats(
            total_expected_cents=total_expected,
            total_paid_cents=total_paid,
            progress_percent=progress_percent(total_paid, total_expected),
            apartments_completed=sum(1 for entry in apartments if entry.status == "complete"),
            apartments_total=len(apartments),
        )
        return ProjectDetail(project=project, apartments=apartments, stats=stats)

    def apartment_projects(self, apartment_id: int, as_of: date | None = None) -> list[ResidentProjectPayments]:
        try:
            apartment = Apartment.objects.select_related("resident").get(pk=apartment_id)
        except Apartment.DoesNotExist as exc:
            raise ApartmentNotFoundError(f"Apartment {apartment_id} does not exist.") from exc

        projects = (
            ExtraordinaryProject.objects.filter(installments__apartment=apartment)
            .exclude(status=ExtraordinaryProject.Status.DELETED)
            .distinct()
            .order_by("-created_at", "-id")
        )
        results: list[ResidentProjectPayments] = []
        for project in projects:
            shares = {share.apartment_id: share for share in project.shares.filter(apartment=apartment)}
            installments = project.installments.filter(apartment=apartment).select_related(
                "apartment",
                "apartment__resident",
            )
            payments = self._apartment_payments(installments, shares=shares, as_of=as_of or self.today)
            if not payments:
                continue
            results.append(
                ResidentProjectPayments(
                    project_id=project.pk,
                    project_name=project.name,
                    project_status=project.status,
                    installment_count=project.installment_count,
                    start_month=project.start_month,
                    start_year=project.start_year,
                    payments=payments[0],
                )
            )
        return results
