from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import ClientManager
from ..services.references import extract_portfolio_code, is_valid_client_ref


# ---------- Client ----------
# A practice client, keyed by its allocated reference (e.g. "1A001")
class Client(models.Model):
    TYPE_CHOICES = [
        ("COMPANY", "Company"),
        ("INDIVIDUAL", "Individual"),
        ("SOLE_TRADER", "Sole trader"),
        ("PARTNERSHIP", "Partnership"),
        ("LLP", "LLP"),
    ]
    STATUS_CHOICES = [
        ("ACTIVE", "Active"),
        ("INACTIVE", "Inactive"),
        ("ARCHIVED", "Archived"),
    ]

    # <portfolio><letter><3 digits>; uniqueness is the primary key constraint
    ref = models.CharField(max_length=16, primary_key=True)

    name = models.CharField(max_length=200)
    client_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default="COMPANY")

    # Must match the digits at the front of `ref`
    portfolio_code = models.PositiveIntegerField()

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="ACTIVE")

    # Contact details
    main_email = models.EmailField(null=True, blank=True)
    main_phone = models.CharField(max_length=50, null=True, blank=True)

    # Companies House number for incorporated clients
    registered_number = models.CharField(max_length=20, null=True, blank=True)

    # Accounting reference date (day / month), e.g. 31 / 3
    accounts_reference_day = models.PositiveSmallIntegerField(null=True, blank=True)
    accounts_reference_month = models.PositiveSmallIntegerField(null=True, blank=True)

    # Postal address
    address_line1 = models.CharField(max_length=200, blank=True, default="")
    address_line2 = models.CharField(max_length=200, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    county = models.CharField(max_length=100, blank=True, default="")
    postcode = models.CharField(max_length=20, blank=True, default="")
    country = models.CharField(max_length=100, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ClientManager()

    class Meta:
        db_table = "clients"
        ordering = ("ref",)
        indexes = [
            models.Index(fields=["portfolio_code", "name"], name="clients_portfol_5b1c2e_idx"),
            models.Index(fields=["portfolio_code", "status"], name="clients_portfol_9d7a41_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.ref})"

    def clean(self):
        if not is_valid_client_ref(self.ref):
            raise ValidationError({"ref": f"Invalid client reference format: {self.ref!r}"})

        # reference prefix and portfolio must agree
        if extract_portfolio_code(self.ref) != self.portfolio_code:
            raise ValidationError(
                {"ref": "Client reference portfolio must match the client's portfolio"}
            )

        low = getattr(settings, "CLIENT_PORTFOLIO_MIN", 1)
        high = getattr(settings, "CLIENT_PORTFOLIO_MAX", 10)
        if not low <= self.portfolio_code <= high:
            raise ValidationError(
                {"portfolio_code": f"Portfolio code must be between {low} and {high}"}
            )

        day = self.accounts_reference_day
        month = self.accounts_reference_month
        if day is not None and not 1 <= day <= 31:
            raise ValidationError({"accounts_reference_day": "Day must be between 1 and 31"})
        if month is not None and not 1 <= month <= 12:
            raise ValidationError({"accounts_reference_month": "Month must be between 1 and 12"})

        return super().clean()

    def save(self, *args, **kwargs):
        # uniqueness of `ref` is left to the primary key so a concurrent
        # insert surfaces as IntegrityError
        self.full_clean(validate_unique=False)
        if self._state.adding:
            # never let a new client silently UPDATE an existing row with the same ref
            kwargs.setdefault("force_insert", True)
        return super().save(*args, **kwargs)
