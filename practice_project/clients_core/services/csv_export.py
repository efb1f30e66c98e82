"""
Client export to CSV.

The header row uses the same column names the importer accepts, so an
exported file can be fed back through ``import_clients_csv`` (refs are
re-allocated on the way in).
"""
import csv
import io

from ..models import Client

EXPORT_COLUMNS = (
    ("Ref", "ref"),
    ("Name", "name"),
    ("Type", "client_type"),
    ("Portfolio Code", "portfolio_code"),
    ("Status", "status"),
    ("Email", "main_email"),
    ("Phone", "main_phone"),
    ("Registered Number", "registered_number"),
    ("Accounting Reference Day", "accounts_reference_day"),
    ("Accounting Reference Month", "accounts_reference_month"),
    ("Address Line 1", "address_line1"),
    ("Address Line 2", "address_line2"),
    ("City", "city"),
    ("County", "county"),
    ("Postcode", "postcode"),
    ("Country", "country"),
)


def export_clients_csv(portfolio_code=None, status=None, search=None) -> str:
    """Render matching clients as CSV text, ordered by ref."""
    qs = Client.objects.search(search)
    if portfolio_code is not None:
        qs = qs.for_portfolio(portfolio_code)
    if status:
        qs = qs.filter(status=status)

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for row in qs.order_by("ref").values_list(*[field for _, field in EXPORT_COLUMNS]):
        # None -> empty cell
        writer.writerow(["" if value is None else value for value in row])
    return out.getvalue()
