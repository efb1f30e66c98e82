"""
Client reference allocation.

Identifiers look like ``<portfolio><letter><3 digits>`` (``1A001``). Each
portfolio draws numbers from per-letter buckets: bucket A hands out 001-999,
then allocation moves on to bucket B, and so on up to Z.

A bucket's ``next_index`` is only a starting hint. Staff can give a client any
free reference by hand, so every candidate is checked against the clients
table before the bucket is advanced past it.

Call ``allocate_client_identifier`` inside the same ``transaction.atomic()``
block that inserts the client row. If that insert hits the primary key
(another request won the same slot), roll back and call it again from scratch.
"""
import logging

from django.conf import settings
from django.db import transaction

from ..exceptions import AllocationExhausted, BucketCreateConflict
from ..models import Client, RefBucket
from .buckets import (advance_bucket, create_bucket, list_buckets_for_portfolio,
                      upsert_bucket)
from .references import format_client_ref, next_alpha, normalize_portfolio_code

logger = logging.getLogger(__name__)


def _limit(name, default):
    return getattr(settings, name, default)


def exists_client_with_id(identifier: str) -> bool:
    return Client.objects.filter(pk=identifier).exists()


def _first_open_bucket(portfolio_code: int, max_index: int) -> RefBucket:
    """
    Earliest-lettered bucket with room left.
    When every bucket is full (or there are none yet) the next letter is created.
    """
    rereads = _limit("CLIENT_REF_BUCKET_REREADS", 3)
    conflict = None

    for _ in range(max(rereads, 1)):
        buckets = list_buckets_for_portfolio(portfolio_code)
        for bucket in buckets:
            if bucket.next_index <= max_index:
                return bucket

        last_alpha = buckets[-1].alpha if buckets else None
        alpha = next_alpha(last_alpha)
        if alpha is None:
            raise AllocationExhausted(
                portfolio_code,
                attempts=0,
                message=f"All reference buckets A-Z are full for portfolio {portfolio_code}",
            )

        try:
            bucket = create_bucket(portfolio_code, alpha, next_index=1)
        except BucketCreateConflict as exc:
            # someone else created it between our read and insert; look again
            logger.info("Bucket %s%s created concurrently, re-reading", portfolio_code, alpha)
            conflict = exc
            continue

        logger.info("Opened reference bucket %s%s", portfolio_code, alpha)
        return bucket

    raise conflict


def _roll_over(portfolio_code: int, bucket: RefBucket) -> RefBucket:
    alpha = next_alpha(bucket.alpha)
    if alpha is None:
        # past Z there is nowhere left to go
        raise AllocationExhausted(
            portfolio_code,
            message=f"Reference bucket {portfolio_code}Z is full; no letters left for portfolio {portfolio_code}",
        )
    logger.info("Bucket %s%s exhausted, rolling over to %s", portfolio_code, bucket.alpha, alpha)
    return upsert_bucket(portfolio_code, alpha)


def allocate_client_identifier(portfolio_code) -> str:
    """
    Return a client reference no existing client uses, and advance its bucket.

    Raises AllocationExhausted when the probe limit is hit or the portfolio
    has run out of letters.
    """
    portfolio_code = normalize_portfolio_code(portfolio_code)
    max_index = _limit("CLIENT_REF_MAX_INDEX", 999)
    max_probes = _limit("CLIENT_REF_MAX_PROBES", 2000)

    with transaction.atomic():
        bucket = _first_open_bucket(portfolio_code, max_index)
        index = bucket.next_index

        for _ in range(max_probes):
            # bucket full (possibly after skipping collisions): move to next letter
            while index > max_index:
                bucket = _roll_over(portfolio_code, bucket)
                index = bucket.next_index

            candidate = format_client_ref(portfolio_code, bucket.alpha, index)
            if not exists_client_with_id(candidate):
                advance_bucket(bucket.pk, index + 1)
                logger.debug("Allocated client reference %s", candidate)
                return candidate

            # taken by a hand-assigned reference; try the next number
            logger.debug("Client reference %s already in use, skipping", candidate)
            index += 1

        logger.error(
            "Gave up allocating a client reference for portfolio %s after %s attempts",
            portfolio_code,
            max_probes,
        )
        raise AllocationExhausted(portfolio_code, attempts=max_probes)
