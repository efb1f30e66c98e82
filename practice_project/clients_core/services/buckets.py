from typing import List

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import BucketCreateConflict
from ..models import RefBucket


# ----------------------------------------------
# Bucket store
# All functions expect to run inside the caller's transaction.atomic()
# ----------------------------------------------
def list_buckets_for_portfolio(portfolio_code: int) -> List[RefBucket]:
    """Buckets for one portfolio, A first. Rows stay locked until the caller commits."""
    return list(RefBucket.objects.for_portfolio(portfolio_code).select_for_update())


def create_bucket(portfolio_code: int, alpha: str, next_index: int = 1) -> RefBucket:
    """
    Insert a new bucket.
    Raises BucketCreateConflict if (portfolio_code, alpha) already exists;
    the insert runs in a savepoint so the outer transaction stays usable.
    """
    try:
        with transaction.atomic():
            return RefBucket.objects.create(
                portfolio_code=portfolio_code,
                alpha=alpha,
                next_index=next_index,
            )
    except IntegrityError as exc:
        raise BucketCreateConflict(portfolio_code, alpha) from exc


def upsert_bucket(portfolio_code: int, alpha: str) -> RefBucket:
    """Return the bucket for this letter, creating it at next_index=1 if missing."""
    bucket, _ = RefBucket.objects.select_for_update().get_or_create(
        portfolio_code=portfolio_code,
        alpha=alpha,
        defaults={"next_index": 1},
    )
    return bucket


def advance_bucket(bucket_id: int, new_next_index: int) -> None:
    # unconditional write; the allocator only calls this after probing the slot
    RefBucket.objects.filter(pk=bucket_id).update(
        next_index=new_next_index,
        updated_at=timezone.now(),
    )
