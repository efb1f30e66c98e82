import json
import logging

from django.core.exceptions import ValidationError
from django.forms.models import model_to_dict
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from .exceptions import AllocationExhausted, ClientReferenceTaken
from .models import Client
from .services.clients import (create_client, move_client_portfolio, portfolio_stats,
                               update_client_ref, validate_portfolio_code)
from .services.csv_export import export_clients_csv
from .services.csv_import import preview_clients_csv

logger = logging.getLogger(__name__)


def _client_json(client):
    data = model_to_dict(client)
    data["ref"] = client.ref
    data["created_at"] = client.created_at.isoformat() if client.created_at else None
    data["updated_at"] = client.updated_at.isoformat() if client.updated_at else None
    return data


def _json_body(request):
    try:
        body = json.loads(request.body or b"{}")
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _error(message, status):
    return JsonResponse({"ok": False, "error": message}, status=status)


@require_POST
def create_client_view(request):
    try:
        client = create_client(_json_body(request), user=getattr(request, "user", None))
    except ValidationError as e:
        return _error("; ".join(e.messages), 400)
    except ClientReferenceTaken as e:
        return _error(str(e), 409)
    except AllocationExhausted as e:
        # needs someone to look at the portfolio's buckets; not worth retrying
        logger.error("Client creation failed: %s", e)
        return _error("Unable to generate client identifier", 503)
    return JsonResponse({"ok": True, "client": _client_json(client)}, status=201)


@require_GET
def client_detail_view(request, ref):
    # If no client found, raise 404 error
    client = get_object_or_404(Client, pk=ref)
    return JsonResponse(_client_json(client))


@require_POST
def update_ref_view(request, ref):
    get_object_or_404(Client, pk=ref)
    try:
        body = _json_body(request)
        client = update_client_ref(ref, body.get("ref"), user=getattr(request, "user", None))
    except ValidationError as e:
        return _error("; ".join(e.messages), 400)
    except ClientReferenceTaken as e:
        return _error(str(e), 409)
    return JsonResponse({"ok": True, "client": _client_json(client)})


@require_POST
def preview_import_view(request):
    upload = request.FILES.get("file")
    raw = upload.read() if upload is not None else request.body
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return _error("CSV must be UTF-8 encoded", 400)
    return JsonResponse(preview_clients_csv(text))


@require_POST
def move_portfolio_view(request, ref):
    get_object_or_404(Client, pk=ref)
    try:
        body = _json_body(request)
        client = move_client_portfolio(
            ref, body.get("portfolio_code"), user=getattr(request, "user", None)
        )
    except ValidationError as e:
        return _error("; ".join(e.messages), 400)
    except AllocationExhausted as e:
        logger.error("Portfolio move failed: %s", e)
        return _error("Unable to generate client identifier", 503)
    return JsonResponse({"ok": True, "client": _client_json(client)})


@require_GET
def export_view(request):
    portfolio = request.GET.get("portfolio")
    try:
        portfolio_code = validate_portfolio_code(portfolio) if portfolio else None
    except ValidationError as e:
        return _error("; ".join(e.messages), 400)

    response = HttpResponse(
        export_clients_csv(
            portfolio_code=portfolio_code,
            status=request.GET.get("status"),
            search=request.GET.get("q"),
        ),
        content_type="text/csv",
    )
    response["Content-Disposition"] = 'attachment; filename="clients.csv"'
    return response


@require_GET
def portfolio_stats_view(request):
    # JSON object keys are strings
    return JsonResponse({str(code): row for code, row in portfolio_stats().items()})
