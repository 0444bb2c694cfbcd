import django.core.validators
import django.db.models.deletion
import simple_history.models
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Building",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
            ],
            options={
                "verbose_name": "Building",
                "verbose_name_plural": "Buildings",
                "ordering": ["name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Apartment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "unit",
                    models.CharField(
                        help_text='Free-form label, e.g. "R/C Esq" or "1º A".',
                        max_length=50,
                        verbose_name="Unit",
                    ),
                ),
                (
                    "permillage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        help_text="Ownership share in parts per thousand of the building.",
                        max_digits=7,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("1000")),
                        ],
                        verbose_name="Permillage (‰)",
                    ),
                ),
                (
                    "building",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="apartments",
                        to="condominium.building",
                        verbose_name="Building",
                    ),
                ),
                (
                    "resident",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="apartments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Resident",
                    ),
                ),
            ],
            options={
                "verbose_name": "Apartment",
                "verbose_name_plural": "Apartments",
                "ordering": ["building_id", "unit", "id"],
            },
        ),
        migrations.CreateModel(
            name="ExtraordinaryProject",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("description", models.TextField(blank=True, verbose_name="Description")),
                (
                    "total_budget_cents",
                    models.PositiveBigIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Total budget (cents)",
                    ),
                ),
                (
                    "installment_count",
                    models.PositiveSmallIntegerField(
                        default=12,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(36),
                        ],
                        verbose_name="Installments",
                    ),
                ),
                (
                    "start_month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Start month",
                    ),
                ),
                ("start_year", models.PositiveSmallIntegerField(verbose_name="Start year")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("archived", "Archived"), ("deleted", "Deleted")],
                        default="active",
                        max_length=10,
                        verbose_name="Status",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                (
                    "building",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="extraordinary_projects",
                        to="condominium.building",
                        verbose_name="Building",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Created by",
                    ),
                ),
            ],
            options={
                "verbose_name": "Extraordinary project",
                "verbose_name_plural": "Extraordinary projects",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["building", "status"], name="condominium_buildin_0b7a2e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ApartmentShare",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "permillage",
                    models.DecimalField(
                        decimal_places=3,
                        help_text="Snapshot taken when the project was created.",
                        max_digits=7,
                        verbose_name="Permillage (‰)",
                    ),
                ),
                ("total_share_cents", models.PositiveBigIntegerField(verbose_name="Total share (cents)")),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="extraordinary_shares",
                        to="condominium.apartment",
                        verbose_name="Apartment",
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shares",
                        to="condominium.extraordinaryproject",
                        verbose_name="Project",
                    ),
                ),
            ],
            options={
                "verbose_name": "Apartment share",
                "verbose_name_plural": "Apartment shares",
                "ordering": ["project_id", "apartment__unit", "apartment_id"],
                "constraints": [
                    models.UniqueConstraint(fields=("project", "apartment"), name="uniq_share_project_apartment"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Installment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "installment_number",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Installment",
                    ),
                ),
                (
                    "due_month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Due month",
                    ),
                ),
                ("due_year", models.PositiveSmallIntegerField(verbose_name="Due year")),
                ("amount_due_cents", models.PositiveBigIntegerField(verbose_name="Amount due (cents)")),
                ("amount_paid_cents", models.PositiveBigIntegerField(default=0, verbose_name="Amount paid (cents)")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("partial", "Partial"), ("paid", "Paid"), ("late", "Late")],
                        default="pending",
                        help_text="Derived from the amounts; late is only computed at read time.",
                        max_length=10,
                        verbose_name="Status",
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="Paid at")),
                ("payment_method", models.CharField(blank=True, max_length=50, verbose_name="Payment method")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="condominium.apartment",
                        verbose_name="Apartment",
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="condominium.extraordinaryproject",
                        verbose_name="Project",
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Updated by",
                    ),
                ),
            ],
            options={
                "verbose_name": "Installment",
                "verbose_name_plural": "Installments",
                "ordering": ["project_id", "apartment__unit", "apartment_id", "installment_number"],
                "indexes": [
                    models.Index(fields=["apartment", "due_year", "due_month"], name="condominium_apartme_5c1f3d_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("project", "apartment", "installment_number"),
                        name="uniq_installment_project_apartment_number",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("payment", "Payment"), ("override", "Manager correction")],
                        max_length=10,
                        verbose_name="Kind",
                    ),
                ),
                (
                    "amount_cents",
                    models.BigIntegerField(
                        help_text="Change applied to the paid amount; negative for corrections that reset it.",
                        verbose_name="Amount (cents)",
                    ),
                ),
                ("recorded_at", models.DateTimeField(verbose_name="Recorded at")),
                ("payment_method", models.CharField(blank=True, max_length=50, verbose_name="Payment method")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Created by",
                    ),
                ),
                (
                    "installment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ledger_entries",
                        to="condominium.installment",
                        verbose_name="Installment",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger entry",
                "verbose_name_plural": "Ledger entries",
                "ordering": ["-recorded_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="HistoricalExtraordinaryProject",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("description", models.TextField(blank=True, verbose_name="Description")),
                (
                    "total_budget_cents",
                    models.PositiveBigIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Total budget (cents)",
                    ),
                ),
                (
                    "installment_count",
                    models.PositiveSmallIntegerField(
                        default=12,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(36),
                        ],
                        verbose_name="Installments",
                    ),
                ),
                (
                    "start_month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Start month",
                    ),
                ),
                ("start_year", models.PositiveSmallIntegerField(verbose_name="Start year")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("archived", "Archived"), ("deleted", "Deleted")],
                        default="active",
                        max_length=10,
                        verbose_name="Status",
                    ),
                ),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                (
                    "history_type",
                    models.CharField(
                        choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                        max_length=1,
                    ),
                ),
                (
                    "building",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="condominium.building",
                        verbose_name="Building",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Created by",
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Extraordinary project",
                "verbose_name_plural": "historical Extraordinary projects",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalInstallment",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                (
                    "installment_number",
                    models.PositiveSmallIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Installment",
                    ),
                ),
                (
                    "due_month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Due month",
                    ),
                ),
                ("due_year", models.PositiveSmallIntegerField(verbose_name="Due year")),
                ("amount_due_cents", models.PositiveBigIntegerField(verbose_name="Amount due (cents)")),
                ("amount_paid_cents", models.PositiveBigIntegerField(default=0, verbose_name="Amount paid (cents)")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("partial", "Partial"), ("paid", "Paid"), ("late", "Late")],
                        default="pending",
                        help_text="Derived from the amounts; late is only computed at read time.",
                        max_length=10,
                        verbose_name="Status",
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="Paid at")),
                ("payment_method", models.CharField(blank=True, max_length=50, verbose_name="Payment method")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                (
                    "history_type",
                    models.CharField(
                        choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                        max_length=1,
                    ),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="condominium.apartment",
                        verbose_name="Apartment",
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="condominium.extraordinaryproject",
                        verbose_name="Project",
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Updated by",
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Installment",
                "verbose_name_plural": "historical Installments",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
