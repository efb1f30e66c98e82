import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Client",
            fields=[
                ("ref", models.CharField(max_length=16, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                (
                    "client_type",
                    models.CharField(
                        choices=[
                            ("COMPANY", "Company"),
                            ("INDIVIDUAL", "Individual"),
                            ("SOLE_TRADER", "Sole trader"),
                            ("PARTNERSHIP", "Partnership"),
                            ("LLP", "LLP"),
                        ],
                        default="COMPANY",
                        max_length=20,
                    ),
                ),
                ("portfolio_code", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive"), ("ARCHIVED", "Archived")],
                        default="ACTIVE",
                        max_length=10,
                    ),
                ),
                ("main_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("main_phone", models.CharField(blank=True, max_length=50, null=True)),
                ("registered_number", models.CharField(blank=True, max_length=20, null=True)),
                ("accounts_reference_day", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("accounts_reference_month", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("address_line1", models.CharField(blank=True, default="", max_length=200)),
                ("address_line2", models.CharField(blank=True, default="", max_length=200)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("county", models.CharField(blank=True, default="", max_length=100)),
                ("postcode", models.CharField(blank=True, default="", max_length=20)),
                ("country", models.CharField(blank=True, default="", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "clients",
                "ordering": ("ref",),
                "indexes": [
                    models.Index(fields=["portfolio_code", "name"], name="clients_portfol_5b1c2e_idx"),
                    models.Index(fields=["portfolio_code", "status"], name="clients_portfol_9d7a41_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RefBucket",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "portfolio_code",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "alpha",
                    models.CharField(
                        max_length=1,
                        validators=[
                            django.core.validators.RegexValidator("^[A-Z]$", "Bucket letter must be A-Z")
                        ],
                    ),
                ),
                ("next_index", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "ref_buckets",
                "ordering": ("portfolio_code", "alpha"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("portfolio_code", "alpha"), name="uq_ref_bucket_portfolio_alpha"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(fields=["object_type", "object_id"], name="clients_cor_object__3f2a9c_idx"),
                    models.Index(fields=["created_at"], name="clients_cor_created_7e4d10_idx"),
                ],
            },
        ),
    ]
