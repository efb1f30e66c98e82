from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import RefBucket

"""Reference buckets are permanent: deleting one would let the allocator hand out old numbers again."""


@receiver(pre_delete, sender=RefBucket)
def prevent_delete_ref_bucket(sender, instance, **kwargs):
    raise ValidationError(
        f"Reference bucket {instance.portfolio_code}{instance.alpha} cannot be deleted."
    )
