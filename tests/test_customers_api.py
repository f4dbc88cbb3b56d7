"""Tests for the customers JSON API."""
import json
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from app.crm import create_app
from app.crm.db import session_scope
from app.crm.models import AuditEvent, Base
from app.crm.modules.customers.models import Customer
from app.crm.modules.customers.service import create_customer

BASE = "/educama/v1/customers"

ACME = {
    "name": "Acme",
    "address": {"street": "Main", "houseNumber": "1", "postalCode": "00000", "city": "X"},
}


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("CUSTOMER_API_PREFIX", "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "SEED_DEMO_CUSTOMERS"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _create(client, name: str, city: str = "Stuttgart"):
    payload = {
        "name": name,
        "address": {"street": "Hauptstrasse", "houseNumber": "1", "postalCode": "70173", "city": city},
    }
    r = client.post(BASE, json=payload)
    assert r.status_code == 201
    return r.json


def _customer_count(app) -> int:
    with session_scope(app) as s:
        return s.query(Customer).count()


def test_create_get_delete_flow(client):
    r = client.post(BASE, json=ACME)
    assert r.status_code == 201
    body = r.json
    assert uuid.UUID(body["uuid"])
    assert body["name"] == "Acme"
    assert body["address"] == ACME["address"]

    r = client.get(f"{BASE}/{body['uuid']}")
    assert r.status_code == 200
    assert r.json == body

    r = client.delete(f"{BASE}/{body['uuid']}")
    assert r.status_code == 200
    assert r.data == b""

    r = client.get(f"{BASE}/{body['uuid']}")
    assert r.status_code == 404
    assert r.json["error"] == "not_found"


def test_create_without_body_is_400(app, client):
    r = client.post(BASE)
    assert r.status_code == 400
    assert r.json["error"] == "bad_request"
    assert _customer_count(app) == 0


def test_create_with_unparsable_json_is_400(app, client):
    r = client.post(BASE, data="{not json", content_type="application/json")
    assert r.status_code == 400
    assert _customer_count(app) == 0


INVALID_PAYLOADS = [
    ({"address": ACME["address"]}, "name"),
    ({"name": "   ", "address": ACME["address"]}, "name"),
    ({"name": 42, "address": ACME["address"]}, "name"),
    ({"name": "Acme"}, "address"),
    ({"name": "Acme", "address": "Main 1"}, "address"),
    ({"name": "Acme", "address": {"street": "Main", "houseNumber": 1}}, "address.houseNumber"),
    (["Acme"], "body"),
]


@pytest.mark.parametrize("payload, field", INVALID_PAYLOADS)
def test_create_invalid_payload_is_400(app, client, payload, field):
    r = client.post(BASE, data=json.dumps(payload), content_type="application/json")
    assert r.status_code == 400
    assert field in [d["field"] for d in r.json["details"]]
    assert _customer_count(app) == 0


def test_create_allows_partial_address_and_duplicate_names(client):
    first = client.post(BASE, json={"name": "Twin", "address": {"city": "Hamburg"}})
    second = client.post(BASE, json={"name": "Twin", "address": {"city": "Hamburg"}})
    assert first.status_code == second.status_code == 201
    assert first.json["uuid"] != second.json["uuid"]
    assert first.json["address"] == {"street": None, "houseNumber": None, "postalCode": None, "city": "Hamburg"}


def test_create_trims_name(client):
    r = client.post(BASE, json={"name": "  Tesa Hamburg  ", "address": ACME["address"]})
    assert r.json["name"] == "Tesa Hamburg"


def test_create_stores_blank_address_fields_as_null(client):
    r = client.post(BASE, json={"name": "Acme", "address": {"street": "", "houseNumber": "  ", "city": " X "}})
    assert r.status_code == 201
    assert r.json["address"] == {"street": None, "houseNumber": None, "postalCode": None, "city": "X"}


def test_update_replaces_name_and_address(client):
    created = client.post(BASE, json=ACME).json
    new = {
        "name": "Acme Corp",
        "address": {"street": "Side", "houseNumber": "2b", "postalCode": "11111", "city": "Y"},
    }
    r = client.put(f"{BASE}/{created['uuid']}", json=new)
    assert r.status_code == 200
    assert r.json == {"uuid": created["uuid"], **new}

    r = client.get(f"{BASE}/{created['uuid']}")
    assert r.json == {"uuid": created["uuid"], **new}


def test_update_unknown_customer_is_404(client):
    r = client.put(f"{BASE}/{uuid.uuid4()}", json=ACME)
    assert r.status_code == 404
    assert r.json["error"] == "not_found"


def test_update_without_body_is_400(client):
    created = client.post(BASE, json=ACME).json
    r = client.put(f"{BASE}/{created['uuid']}")
    assert r.status_code == 400

    r = client.get(f"{BASE}/{created['uuid']}")
    assert r.json["name"] == "Acme"


@pytest.mark.parametrize("payload, field", INVALID_PAYLOADS)
def test_update_invalid_payload_is_400_and_leaves_row(app, client, payload, field):
    created = client.post(BASE, json=ACME).json
    r = client.put(f"{BASE}/{created['uuid']}", data=json.dumps(payload), content_type="application/json")
    assert r.status_code == 400
    assert field in [d["field"] for d in r.json["details"]]

    assert client.get(f"{BASE}/{created['uuid']}").json == created
    with session_scope(app) as s:
        assert [e.action for e in s.query(AuditEvent).all()] == ["customer.create"]


def test_malformed_uuid_is_400(client):
    assert client.get(f"{BASE}/not-a-uuid").status_code == 400
    assert client.put(f"{BASE}/not-a-uuid", json=ACME).status_code == 400
    assert client.delete(f"{BASE}/not-a-uuid").status_code == 400


def test_delete_unknown_customer_is_noop(app, client):
    _create(client, "Keep Me")
    r = client.delete(f"{BASE}/{uuid.uuid4()}")
    assert r.status_code == 200
    assert _customer_count(app) == 1


def test_list_pages_over_all_customers(client):
    names = [f"Customer {i}" for i in range(7)]
    for n in names:
        _create(client, n)

    seen = []
    for page in range(3):
        r = client.get(f"{BASE}?page={page}&size=3")
        assert r.status_code == 200
        assert r.json["number"] == page
        assert r.json["size"] == 3
        assert r.json["totalElements"] == 7
        assert r.json["totalPages"] == 3
        seen.extend(c["name"] for c in r.json["content"])

    assert seen == names
    r = client.get(f"{BASE}?page=3&size=3")
    assert r.json["content"] == []
    assert r.json["last"] is True


def test_list_defaults_and_bad_params(client):
    _create(client, "Only")
    r = client.get(f"{BASE}?page=abc&size=-5")
    assert r.status_code == 200
    assert r.json["number"] == 0
    assert r.json["size"] == 20
    assert r.json["first"] is True
    assert r.json["last"] is True


def test_list_size_is_capped(app, client):
    app.config["MAX_PAGE_SIZE"] = 5
    r = client.get(f"{BASE}?size=500")
    assert r.json["size"] == 5


def test_list_sort_by_name_desc(client):
    for n in ("Bayer AG", "Apple", "Continental AG"):
        _create(client, n)
    r = client.get(f"{BASE}?sort=name,desc")
    assert [c["name"] for c in r.json["content"]] == ["Continental AG", "Bayer AG", "Apple"]


def test_list_unknown_sort_property_is_400(client):
    r = client.get(f"{BASE}?sort=password")
    assert r.status_code == 400
    assert r.json["details"][0]["field"] == "sort"


def test_suggestions_match_case_insensitive_substring(client):
    _create(client, "Tesa Hamburg", city="Hamburg")
    _create(client, "Bayer AG", city="Leverkusen")

    r = client.get(f"{BASE}/suggestions?term=tesa")
    assert r.status_code == 200
    assert [c["name"] for c in r.json["content"]] == ["Tesa Hamburg"]
    assert r.json["totalElements"] == 1

    r = client.get(f"{BASE}/suggestions?term=HAMB")
    assert [c["name"] for c in r.json["content"]] == ["Tesa Hamburg"]

    r = client.get(f"{BASE}/suggestions?term=siemens")
    assert r.json["content"] == []
    assert r.json["totalElements"] == 0


def test_suggestions_paginate(client):
    for i in range(5):
        _create(client, f"Tesa {i}")
    _create(client, "Other")
    r = client.get(f"{BASE}/suggestions?term=tesa&page=1&size=2")
    assert [c["name"] for c in r.json["content"]] == ["Tesa 2", "Tesa 3"]
    assert r.json["totalElements"] == 5
    assert r.json["totalPages"] == 3


def test_suggestions_require_term(client):
    r = client.get(f"{BASE}/suggestions")
    assert r.status_code == 400
    assert r.json["details"][0]["field"] == "term"


def test_mutations_are_audited(app, client):
    created = client.post(BASE, json=ACME, headers={"X-Request-ID": "req-1"}).json
    client.put(f"{BASE}/{created['uuid']}", json={**ACME, "name": "Acme 2"})
    client.delete(f"{BASE}/{created['uuid']}")

    with session_scope(app) as s:
        events = s.query(AuditEvent).order_by(AuditEvent.id.asc()).all()
        assert [e.action for e in events] == ["customer.create", "customer.update", "customer.delete"]
        assert {e.entity_id for e in events} == {created["uuid"]}
        assert events[0].request_id == "req-1"
        assert json.loads(events[1].metadata_json)["fields_changed"] == ["name"]


def test_failed_request_rolls_back(app, client, monkeypatch):
    def _boom(_c):
        raise RuntimeError("serialization failed")

    monkeypatch.setattr("app.crm.modules.customers.api.customer_to_resource", _boom)
    r = client.post(BASE, json=ACME)
    assert r.status_code == 500
    assert r.json["error"] == "internal_error"
    assert _customer_count(app) == 0
    with session_scope(app) as s:
        assert s.query(AuditEvent).count() == 0


def test_huge_page_index_returns_empty_page(client):
    _create(client, "Tesa Hamburg")

    r = client.get(f"{BASE}?page=99999999999999999999&size=20")
    assert r.status_code == 200
    assert r.json["content"] == []
    assert r.json["totalElements"] == 1
    assert r.json["last"] is True

    r = client.get(f"{BASE}/suggestions?term=a&page=9223372036854775807&size=2")
    assert r.status_code == 200
    assert r.json["content"] == []
    assert r.json["totalElements"] == 1


def test_suggestions_fold_non_ascii_case(client):
    _create(client, "Daimler AG (Standort Möhringen)")

    for term in ("möhringen", "MÖHRINGEN", "Möhr"):
        r = client.get(f"{BASE}/suggestions", query_string={"term": term})
        assert [c["name"] for c in r.json["content"]] == ["Daimler AG (Standort Möhringen)"], term


def test_database_error_is_json_500(client, monkeypatch):
    def _db_down(*_a, **_kw):
        raise OperationalError("SELECT 1", {}, Exception("db down"))

    monkeypatch.setattr("app.crm.modules.customers.api.find_all_customers", _db_down)
    r = client.get(BASE)
    assert r.status_code == 500
    assert r.json["error"] == "persistence_error"
    assert "request_id" in r.json


def test_database_error_on_create_rolls_back(app, client, monkeypatch):
    def _db_down(s, *, name, address):
        create_customer(s, name=name, address=address)
        raise OperationalError("INSERT INTO customers", {}, Exception("db down"))

    monkeypatch.setattr("app.crm.modules.customers.api.create_customer", _db_down)
    r = client.post(BASE, json=ACME)
    assert r.status_code == 500
    assert r.json["error"] == "persistence_error"
    assert _customer_count(app) == 0
