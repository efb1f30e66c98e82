"""
Bulk client import from CSV.

Supported columns (header match is case-insensitive):

- Name / Company Name (required)
- Type: COMPANY, INDIVIDUAL, SOLE_TRADER, PARTNERSHIP, LLP (default COMPANY)
- Portfolio Code / Portfolio (default 1)
- Status: ACTIVE, INACTIVE, ARCHIVED (default ACTIVE)
- Registered Number / Company Number
- Email / Main Email, Phone / Main Phone
- Accounting Reference Day / ARD Day, Accounting Reference Month / ARD Month
- Address Line 1 / Address, Address Line 2, City, County, Postcode, Country

Every imported client gets an allocated reference.
"""
import csv
import io
import logging

from django.conf import settings
from django.core.exceptions import ValidationError

from ..exceptions import AllocationExhausted, ClientReferenceTaken
from ..models import Client, RefBucket
from .clients import create_client, validate_portfolio_code
from .references import format_client_ref, next_alpha

logger = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "name": ("company name", "name"),
    "client_type": ("type",),
    "portfolio_code": ("portfolio code", "portfolio"),
    "status": ("status",),
    "registered_number": ("company number", "registered number"),
    "main_email": ("email", "main email"),
    "main_phone": ("phone", "main phone"),
    "accounts_reference_day": ("accounting reference day", "accounts accounting reference day", "ard day"),
    "accounts_reference_month": ("accounting reference month", "accounts accounting reference month", "ard month"),
    "address_line1": ("address line 1", "line1", "address"),
    "address_line2": ("address line 2", "line2"),
    "city": ("city",),
    "county": ("county",),
    "postcode": ("postcode",),
    "country": ("country",),
}


def read_csv_records(text: str):
    """Yield (line_number, {lowercased header: stripped value}) for each data row."""
    text = (text or "").lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text))
    for record in reader:
        row = {
            (key or "").strip().lower(): (value or "").strip()
            for key, value in record.items()
            if key is not None and not isinstance(value, list)
        }
        if not any(row.values()):
            continue
        yield reader.line_num, row


def _pick(row: dict, *names) -> str:
    for name in names:
        value = row.get(name, "")
        if value:
            return value
    return ""


def _optional_int(value: str):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def row_to_client_data(row: dict) -> dict:
    data = {key: _pick(row, *aliases) for key, aliases in COLUMN_ALIASES.items()}
    data["client_type"] = (data["client_type"] or "COMPANY").upper()
    data["status"] = (data["status"] or "ACTIVE").upper()
    data["portfolio_code"] = data["portfolio_code"] or None
    data["accounts_reference_day"] = _optional_int(data["accounts_reference_day"])
    data["accounts_reference_month"] = _optional_int(data["accounts_reference_month"])
    return data


def _error_text(exc) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc)


# ----------------------------------------------
# Import
# ----------------------------------------------
def import_clients_csv(text: str, user=None) -> dict:
    """
    Create a client per CSV row. Row-level failures are collected and the
    import carries on; database errors propagate.
    """
    created = 0
    errors = []

    for line_number, row in read_csv_records(text):
        data = row_to_client_data(row)
        try:
            create_client(data, user=user)
            created += 1
        except (ValidationError, ClientReferenceTaken, AllocationExhausted) as exc:
            errors.append({"line": line_number, "name": data["name"], "error": _error_text(exc)})

    logger.info("CSV import finished: %s created, %s failed", created, len(errors))
    return {"created": created, "errors": errors}


# ----------------------------------------------
# Preview (dry run)
# ----------------------------------------------
class _PortfolioSimulation:
    """In-memory copy of one portfolio's buckets and used refs, advanced like the allocator."""

    def __init__(self, portfolio_code: int):
        self.portfolio_code = portfolio_code
        self.max_index = getattr(settings, "CLIENT_REF_MAX_INDEX", 999)
        self.max_probes = getattr(settings, "CLIENT_REF_MAX_PROBES", 2000)
        self.buckets = dict(
            RefBucket.objects.for_portfolio(portfolio_code).values_list("alpha", "next_index")
        )
        self.taken = set(
            Client.objects.for_portfolio(portfolio_code).values_list("ref", flat=True)
        )

    def _open_bucket(self):
        for alpha in sorted(self.buckets):
            if self.buckets[alpha] <= self.max_index:
                return alpha
        alpha = next_alpha(max(self.buckets) if self.buckets else None)
        if alpha is not None:
            self.buckets[alpha] = 1
        return alpha

    def next_ref(self):
        alpha = self._open_bucket()
        if alpha is None:
            return None
        index = self.buckets[alpha]

        for _ in range(self.max_probes):
            while index > self.max_index:
                alpha = next_alpha(alpha)
                if alpha is None:
                    return None
                index = self.buckets.setdefault(alpha, 1)

            candidate = format_client_ref(self.portfolio_code, alpha, index)
            if candidate not in self.taken:
                # reserve for the rest of this preview
                self.taken.add(candidate)
                self.buckets[alpha] = index + 1
                return candidate
            index += 1
        return None


def preview_clients_csv(text: str) -> dict:
    """Work out the ref each row would get, without writing anything."""
    simulations = {}
    rows = []

    for line_number, row in read_csv_records(text):
        data = row_to_client_data(row)
        entry = {"line": line_number, "name": data["name"]}
        try:
            if not data["name"]:
                raise ValidationError("Client name is required")
            portfolio_code = validate_portfolio_code(data["portfolio_code"])
        except ValidationError as exc:
            entry.update({"portfolio_code": data["portfolio_code"], "error": _error_text(exc)})
            rows.append(entry)
            continue

        entry["portfolio_code"] = portfolio_code
        if portfolio_code not in simulations:
            simulations[portfolio_code] = _PortfolioSimulation(portfolio_code)

        suggested = simulations[portfolio_code].next_ref()
        if suggested is None:
            entry["error"] = "Unable to generate client identifier"
        else:
            entry["suggested_ref"] = suggested
        rows.append(entry)

    valid = sum(1 for r in rows if "error" not in r)
    return {"total": len(rows), "valid": valid, "rows": rows}
