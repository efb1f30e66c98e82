from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models

from ..managers import RefBucketManager


# ---------- Reference bucket ----------
class RefBucket(models.Model):
    """
    Counter for one (portfolio, letter) pair.
    next_index is the lowest sequence number that *might* be free;
    the allocator still probes the clients table before using it.
    """

    portfolio_code = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    # Single uppercase letter, A..Z
    alpha = models.CharField(
        max_length=1,
        validators=[RegexValidator(r"^[A-Z]$", "Bucket letter must be A-Z")],
    )

    # 1..999 while the bucket has room, > 999 once exhausted
    next_index = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RefBucketManager()

    class Meta:
        db_table = "ref_buckets"
        ordering = ("portfolio_code", "alpha")
        constraints = [
            models.UniqueConstraint(
                fields=["portfolio_code", "alpha"], name="uq_ref_bucket_portfolio_alpha"
            ),
        ]

    def __str__(self):
        return f"{self.portfolio_code}{self.alpha} (next {self.next_index})"

    def has_capacity(self, max_index=999):
        return self.next_index <= max_index

    def clean(self):
        if self.next_index < 1:
            raise ValidationError("next_index must be at least 1")
