import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import ClientReferenceTaken
from ..models import Client
from .allocator import allocate_client_identifier, exists_client_with_id
from .audit_helper import log_action
from .references import (DEFAULT_PORTFOLIO_CODE, extract_portfolio_code,
                         is_valid_client_ref)

logger = logging.getLogger(__name__)

# Fields callers may set; ref and portfolio_code have their own rules
EDITABLE_FIELDS = (
    "name",
    "client_type",
    "status",
    "main_email",
    "main_phone",
    "registered_number",
    "accounts_reference_day",
    "accounts_reference_month",
    "address_line1",
    "address_line2",
    "city",
    "county",
    "postcode",
    "country",
)
NULLABLE_FIELDS = {
    "main_email",
    "main_phone",
    "registered_number",
    "accounts_reference_day",
    "accounts_reference_month",
}

__all__ = [
    "create_client",
    "delete_client",
    "exists_client_with_id",
    "find_by_portfolio",
    "get_client",
    "move_client_portfolio",
    "portfolio_stats",
    "search_clients",
    "update_client",
    "update_client_ref",
    "validate_portfolio_code",
]


def validate_portfolio_code(value) -> int:
    """Explicit range check for caller input (1..10 unless configured otherwise)."""
    if value is None or value == "":
        return DEFAULT_PORTFOLIO_CODE
    try:
        code = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Portfolio code must be a whole number, got {value!r}")

    low = getattr(settings, "CLIENT_PORTFOLIO_MIN", 1)
    high = getattr(settings, "CLIENT_PORTFOLIO_MAX", 10)
    if not low <= code <= high:
        raise ValidationError(f"Portfolio code must be between {low} and {high}")
    return code


def _editable_fields(data: dict) -> dict:
    fields = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = value.strip()
        if key in NULLABLE_FIELDS and value == "":
            value = None
        fields[key] = value
    return fields


def _clean_ref(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"Client reference must be a string, got {value!r}")
    return value.strip()


def _check_ref_for_portfolio(ref: str, portfolio_code: int):
    if not is_valid_client_ref(ref):
        raise ValidationError(f"Invalid client reference format: {ref!r}")
    if extract_portfolio_code(ref) != portfolio_code:
        raise ValidationError("Client reference portfolio must match the client's portfolio")


# ----------------------------------------------
# Create
# ----------------------------------------------
def _insert_client(ref: str, portfolio_code: int, fields: dict, user=None) -> Client:
    client = Client.objects.create(ref=ref, portfolio_code=portfolio_code, **fields)
    log_action(
        action="create",
        instance=client,
        user=user,
        changes={"name": client.name, "portfolio_code": portfolio_code},
    )
    return client


def create_client(data: dict, user=None) -> Client:
    """
    Create a client under either the reference the caller supplied or a freshly
    allocated one. The stored ref is exactly that value.

    A supplied ref that is already taken raises ClientReferenceTaken.
    An allocated ref that loses an insert race is thrown away and the whole
    allocate + insert is retried in a new savepoint.
    """
    if not isinstance(data, dict):
        raise ValidationError("Client data must be an object")
    portfolio_code = validate_portfolio_code(data.get("portfolio_code"))
    fields = _editable_fields(data)
    if not fields.get("name"):
        raise ValidationError("Client name is required")

    supplied_ref = _clean_ref(data.get("ref"))

    if supplied_ref:
        _check_ref_for_portfolio(supplied_ref, portfolio_code)
        if exists_client_with_id(supplied_ref):
            raise ClientReferenceTaken(supplied_ref)
        try:
            with transaction.atomic():
                client = _insert_client(supplied_ref, portfolio_code, fields, user=user)
        except IntegrityError as exc:
            raise ClientReferenceTaken(supplied_ref) from exc
    else:
        retries = max(getattr(settings, "CLIENT_CREATE_RETRIES", 3), 1)
        for attempt in range(1, retries + 1):
            try:
                with transaction.atomic():
                    ref = allocate_client_identifier(portfolio_code)
                    client = _insert_client(ref, portfolio_code, fields, user=user)
                break
            except IntegrityError:
                if attempt == retries:
                    raise
                logger.warning(
                    "Insert race on allocated reference in portfolio %s, retrying (%s/%s)",
                    portfolio_code,
                    attempt,
                    retries,
                )

    logger.info("Created client: %s (%s)", client.name, client.ref)
    return client


# ----------------------------------------------
# Read
# ----------------------------------------------
def get_client(ref: str) -> Client:
    return Client.objects.get(pk=ref)


def find_by_portfolio(portfolio_code):
    code = validate_portfolio_code(portfolio_code)
    return Client.objects.for_portfolio(code).order_by("ref")


def search_clients(query: str, portfolio_code=None):
    qs = Client.objects.search(query)
    if portfolio_code is not None:
        qs = qs.for_portfolio(validate_portfolio_code(portfolio_code))
    return qs.order_by("ref")


# ----------------------------------------------
# Update
# ----------------------------------------------
def update_client(ref: str, data: dict, user=None) -> Client:
    """Update ordinary fields. `ref` and `portfolio_code` in `data` are ignored."""
    fields = _editable_fields(data)

    with transaction.atomic():
        client = Client.objects.select_for_update().get(pk=ref)

        changes = {}
        for key, value in fields.items():
            old = getattr(client, key)
            if old != value:
                changes[key] = [old, value]
                setattr(client, key, value)

        if changes:
            client.save()
            log_action(action="update", instance=client, user=user, changes=changes)

    logger.info("Updated client: %s (%s)", client.name, client.ref)
    return client


def update_client_ref(ref: str, new_ref: str, user=None) -> Client:
    """
    Administrative re-reference. The new ref must be well formed, in the same
    portfolio and unused. Buckets are left alone; the allocator skips
    hand-assigned refs when it reaches them.
    """
    new_ref = _clean_ref(new_ref)

    with transaction.atomic():
        client = Client.objects.select_for_update().get(pk=ref)
        _check_ref_for_portfolio(new_ref, client.portfolio_code)

        if new_ref == client.ref:
            return client

        if exists_client_with_id(new_ref):
            raise ClientReferenceTaken(new_ref)

        try:
            with transaction.atomic():
                Client.objects.filter(pk=client.ref).update(ref=new_ref)
        except IntegrityError as exc:
            raise ClientReferenceTaken(new_ref) from exc

        updated = Client.objects.get(pk=new_ref)
        log_action(
            action="ref_change",
            instance=updated,
            user=user,
            changes={"ref": [ref, new_ref]},
        )

    logger.info("Updated client ref from %s to %s", ref, new_ref)
    return updated


def move_client_portfolio(ref: str, new_portfolio_code, user=None) -> Client:
    """
    Move a client to another portfolio under a freshly allocated reference.
    Moving to the portfolio it is already in changes nothing.
    """
    if new_portfolio_code is None or new_portfolio_code == "":
        raise ValidationError("New portfolio code is required")
    new_code = validate_portfolio_code(new_portfolio_code)

    retries = max(getattr(settings, "CLIENT_CREATE_RETRIES", 3), 1)
    for attempt in range(1, retries + 1):
        try:
            with transaction.atomic():
                client = Client.objects.select_for_update().get(pk=ref)
                old_code = client.portfolio_code
                if old_code == new_code:
                    return client

                new_ref = allocate_client_identifier(new_code)
                Client.objects.filter(pk=client.ref).update(
                    ref=new_ref, portfolio_code=new_code, updated_at=timezone.now()
                )
                moved = Client.objects.get(pk=new_ref)
                log_action(
                    action="ref_change",
                    instance=moved,
                    user=user,
                    changes={"ref": [ref, new_ref], "portfolio_code": [old_code, new_code]},
                )
            break
        except IntegrityError:
            if attempt == retries:
                raise
            logger.warning(
                "Allocated reference in portfolio %s was taken during move, retrying (%s/%s)",
                new_code,
                attempt,
                retries,
            )

    logger.info("Moved client %s -> %s (portfolio %s -> %s)", ref, new_ref, old_code, new_code)
    return moved


def portfolio_stats() -> dict:
    """{portfolio_code: {"count", "active", "inactive"}} for every configured portfolio."""
    low = getattr(settings, "CLIENT_PORTFOLIO_MIN", 1)
    high = getattr(settings, "CLIENT_PORTFOLIO_MAX", 10)

    stats = {}
    for code in range(low, high + 1):
        count = Client.objects.for_portfolio(code).count()
        active = Client.objects.active(code).count()
        stats[code] = {"count": count, "active": active, "inactive": count - active}
    return stats


# ----------------------------------------------
# Delete
# ----------------------------------------------
def delete_client(ref: str, user=None) -> None:
    with transaction.atomic():
        client = Client.objects.select_for_update().get(pk=ref)
        name = client.name
        client.delete()
        # bucket counters are not rewound; the ref may be reused only by hand
        log_action(
            action="delete",
            instance=client,
            user=user,
            object_id=ref,
            changes={"name": name},
        )
    logger.info("Deleted client: %s (%s)", name, ref)
