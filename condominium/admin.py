from django.contrib import admin, messages
from simple_history.admin import SimpleHistoryAdmin

from .exceptions import LedgerValidationError
from .models import Apartment, ApartmentShare, Building, ExtraordinaryProject, Installment, LedgerEntry
from .services.ledger import PaymentLedgerService
from .services.money import format_cents
from .services.projects import ExtraordinaryProjectService


class ApartmentInline(admin.TabularInline):
    model = Apartment
    extra = 0
    fields = ("unit", "permillage", "resident")


class ApartmentShareInline(admin.TabularInline):
    model = ApartmentShare
    extra = 0
    can_delete = False
    fields = ("apartment", "permillage", "total_share_cents")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Building)
class BuildingAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)
    inlines = (ApartmentInline,)


@admin.register(Apartment)
class ApartmentAdmin(admin.ModelAdmin):
    list_display = ("unit", "building", "permillage", "resident")
    list_filter = ("building",)
    search_fields = ("unit", "building__name")


@admin.register(ExtraordinaryProject)
class ExtraordinaryProjectAdmin(SimpleHistoryAdmin):
    list_display = (
        "name",
        "building",
        "budget_display",
        "installment_count",
        "start_month",
        "start_year",
        "status",
        "created_at",
    )
    list_filter = ("status", "building")
    search_fields = ("name", "building__name")
    readonly_fields = (
        "total_budget_cents",
        "installment_count",
        "start_month",
        "start_year",
        "created_at",
        "updated_at",
        "created_by",
    )
    inlines = (ApartmentShareInline,)
    actions = ("archive_selected",)
    history_list_display = ("status", "history_user", "history_date")

    def has_add_permission(self, request):
        return False

    @admin.display(description="Budget", ordering="total_budget_cents")
    def budget_display(self, obj):
        return format_cents(obj.total_budget_cents)

    @admin.action(description="Archive selected projects")
    def archive_selected(self, request, queryset):
        service = ExtraordinaryProjectService()
        archived = 0
        for project in queryset:
            if project.status == ExtraordinaryProject.Status.ARCHIVED:
                continue
            service.archive_project(project.pk)
            archived += 1
        if archived:
            self.message_user(request, f"{archived} project(s) archived.", level=messages.SUCCESS)
        else:
            self.message_user(request, "No projects archived (already archived).", level=messages.WARNING)


@admin.register(Installment)
class InstallmentAdmin(SimpleHistoryAdmin):
    list_display = (
        "project",
        "apartment",
        "installment_number",
        "due_month",
        "due_year",
        "amount_due_display",
        "amount_paid_display",
        "status",
    )
    list_filter = ("status", "project", "due_year")
    search_fields = ("project__name", "apartment__unit")
    readonly_fields = (
        "project",
        "apartment",
        "installment_number",
        "due_month",
        "due_year",
        "amount_due_cents",
        "amount_paid_cents",
        "status",
        "paid_at",
        "updated_at",
        "updated_by",
    )
    actions = ("mark_paid", "mark_pending")
    history_list_display = ("amount_paid_cents", "status", "history_user", "history_date")

    def has_add_permission(self, request):
        return False

    @admin.display(description="Amount due", ordering="amount_due_cents")
    def amount_due_display(self, obj):
        return format_cents(obj.amount_due_cents)

    @admin.display(description="Amount paid", ordering="amount_paid_cents")
    def amount_paid_display(self, obj):
        return format_cents(obj.amount_paid_cents)

    def _set_status(self, request, queryset, status):
        try:
            updated = PaymentLedgerService.bulk_set_status_for_ids(
                queryset.values_list("pk", flat=True),
                status,
                user=request.user if request.user.is_authenticated else None,
            )
        except LedgerValidationError as exc:
            self.message_user(request, exc.reason, level=messages.ERROR)
            return
        if updated:
            self.message_user(request, f"{updated} installment(s) updated.", level=messages.SUCCESS)
        else:
            self.message_user(request, "No installments changed.", level=messages.WARNING)

    @admin.action(description="Mark selected installments as paid")
    def mark_paid(self, request, queryset):
        self._set_status(request, queryset, Installment.Status.PAID)

    @admin.action(description="Mark selected installments as pending")
    def mark_pending(self, request, queryset):
        self._set_status(request, queryset, Installment.Status.PENDING)


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("recorded_at", "installment", "kind", "amount_cents", "payment_method", "created_by")
    list_filter = ("kind", "recorded_at")
    search_fields = ("installment__project__name", "installment__apartment__unit", "notes")
    readonly_fields = (
        "installment",
        "kind",
        "amount_cents",
        "recorded_at",
        "payment_method",
        "notes",
        "created_by",
        "created_at",
    )
    ordering = ("-recorded_at",)
