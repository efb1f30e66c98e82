import json
from unittest import mock

import pytest

from clients_core.exceptions import AllocationExhausted
from clients_core.models import Client


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


@pytest.mark.django_db
def test_create_client_allocates_reference(client):
    response = post_json(client, "/clients/", {"name": "Nova Coin Ltd", "portfolio_code": 2})

    assert response.status_code == 201
    data = json.loads(response.content)
    assert data["ok"] is True
    assert data["client"]["ref"] == "2A001"
    assert Client.objects.filter(pk="2A001").exists()


@pytest.mark.django_db
def test_create_client_validation_error_is_400(client):
    response = post_json(client, "/clients/", {"name": "Too high", "portfolio_code": 11})

    assert response.status_code == 400
    assert "between 1 and 10" in json.loads(response.content)["error"]


@pytest.mark.django_db
def test_create_client_with_taken_ref_is_409(client):
    Client.objects.create(ref="1A001", name="Existing", portfolio_code=1)

    response = post_json(client, "/clients/", {"name": "New", "portfolio_code": 1, "ref": "1A001"})

    assert response.status_code == 409


@pytest.mark.django_db
def test_allocation_exhausted_is_reported_as_creation_failure(client):
    with mock.patch("clients_core.views.create_client", side_effect=AllocationExhausted(1)):
        response = post_json(client, "/clients/", {"name": "Unlucky", "portfolio_code": 1})

    assert response.status_code == 503
    assert json.loads(response.content)["error"] == "Unable to generate client identifier"


@pytest.mark.django_db
def test_client_detail(client):
    Client.objects.create(ref="3H001", name="123 Homes", portfolio_code=3)

    response = client.get("/clients/3H001/")
    assert response.status_code == 200
    assert json.loads(response.content)["name"] == "123 Homes"

    assert client.get("/clients/3H002/").status_code == 404


@pytest.mark.django_db
def test_update_ref_view(client):
    Client.objects.create(ref="1A001", name="Acme", portfolio_code=1)

    response = post_json(client, "/clients/1A001/ref/", {"ref": "1A050"})
    assert response.status_code == 200
    assert json.loads(response.content)["client"]["ref"] == "1A050"

    bad = post_json(client, "/clients/1A050/ref/", {"ref": "2A050"})
    assert bad.status_code == 400


@pytest.mark.django_db
def test_preview_import_view(client):
    response = client.post(
        "/clients/import/preview/",
        data="Name,Portfolio\nA Ltd,1\nB Ltd,1\n",
        content_type="text/csv",
    )

    assert response.status_code == 200
    data = json.loads(response.content)
    assert [r["suggested_ref"] for r in data["rows"]] == ["1A001", "1A002"]
    assert not Client.objects.exists()


@pytest.mark.django_db
def test_non_object_json_body_is_400(client):
    response = client.post("/clients/", data="[1]", content_type="application/json")

    assert response.status_code == 400
    assert json.loads(response.content)["error"] == "Request body must be a JSON object"

    Client.objects.create(ref="1A001", name="Acme", portfolio_code=1)
    assert client.post("/clients/1A001/ref/", data='"1A002"', content_type="application/json").status_code == 400


@pytest.mark.django_db
def test_non_string_ref_is_400(client):
    response = post_json(client, "/clients/", {"name": "X", "portfolio_code": 1, "ref": 123})
    assert response.status_code == 400
    assert not Client.objects.exists()

    Client.objects.create(ref="1A001", name="Acme", portfolio_code=1)
    response = post_json(client, "/clients/1A001/ref/", {"ref": ["1A002"]})
    assert response.status_code == 400
    assert Client.objects.filter(pk="1A001").exists()


@pytest.mark.django_db
def test_preview_rejects_non_utf8_body(client):
    response = client.post("/clients/import/preview/", data=b"\xff\xfe\xfa", content_type="text/csv")

    assert response.status_code == 400
    assert json.loads(response.content)["error"] == "CSV must be UTF-8 encoded"


@pytest.mark.django_db
def test_move_portfolio_view(client):
    Client.objects.create(ref="1A001", name="Acme", portfolio_code=1)

    response = post_json(client, "/clients/1A001/portfolio/", {"portfolio_code": 3})
    assert response.status_code == 200
    data = json.loads(response.content)["client"]
    assert (data["ref"], data["portfolio_code"]) == ("3A001", 3)

    assert post_json(client, "/clients/3A001/portfolio/", {"portfolio_code": 12}).status_code == 400
    assert post_json(client, "/clients/3A001/portfolio/", {}).status_code == 400
    assert post_json(client, "/clients/1A001/portfolio/", {"portfolio_code": 2}).status_code == 404


@pytest.mark.django_db
def test_move_portfolio_view_reports_exhaustion(client):
    Client.objects.create(ref="1A001", name="Acme", portfolio_code=1)

    with mock.patch(
        "clients_core.views.move_client_portfolio", side_effect=AllocationExhausted(2)
    ):
        response = post_json(client, "/clients/1A001/portfolio/", {"portfolio_code": 2})

    assert response.status_code == 503


@pytest.mark.django_db
def test_export_view(client):
    Client.objects.create(ref="1A001", name="Acme", portfolio_code=1)
    Client.objects.create(ref="2A001", name="Nova", portfolio_code=2)

    response = client.get("/clients/export/", {"portfolio": "2"})

    assert response.status_code == 200
    assert response["Content-Type"] == "text/csv"
    lines = response.content.decode().splitlines()
    assert lines[0].startswith("Ref,Name,Type,Portfolio Code")
    assert [line.split(",")[0] for line in lines[1:]] == ["2A001"]

    assert client.get("/clients/export/", {"portfolio": "x"}).status_code == 400


@pytest.mark.django_db
def test_portfolio_stats_view(client):
    Client.objects.create(ref="4A001", name="Acme", portfolio_code=4)

    data = json.loads(client.get("/clients/stats/").content)

    assert data["4"] == {"count": 1, "active": 1, "inactive": 0}
    assert data["1"]["count"] == 0
    assert len(data) == 10
