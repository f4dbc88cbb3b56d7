from __future__ import annotations

from uuid import UUID

from flask import Blueprint, current_app, jsonify, request

from app.crm.db import db_session, request_transaction
from app.crm.errors import BadRequestError
from app.crm.modules.customers.resources import (
    address_from_resource,
    customer_list_to_resource,
    customer_to_resource,
)
from app.crm.modules.customers.service import (
    SORTABLE,
    create_customer,
    delete_customer,
    find_all_customers,
    find_customer_by_uuid,
    find_suggestions_for_customer,
    update_customer,
    validate_customer_payload,
)
from app.crm.pagination import PageRequest, page_request_from_args

bp = Blueprint("customers", __name__)


def _parse_uuid(raw: str) -> UUID:
    try:
        return UUID((raw or "").strip())
    except ValueError:
        raise BadRequestError(
            "Customer uuid is missing or malformed.",
            details=[{"field": "uuid", "message": f"'{raw}' is not a valid UUID."}],
        )


def _customer_payload() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        raise BadRequestError("Request body is required.")
    errs = validate_customer_payload(payload)
    if errs:
        raise BadRequestError(
            "Customer payload is invalid.",
            details=[{"field": e.field, "message": e.message} for e in errs],
        )
    return payload


def _page_request() -> PageRequest:
    try:
        return page_request_from_args(
            request.args,
            default_size=current_app.config["DEFAULT_PAGE_SIZE"],
            max_size=current_app.config["MAX_PAGE_SIZE"],
            sortable=SORTABLE,
        )
    except ValueError as e:
        raise BadRequestError(str(e), details=[{"field": "sort", "message": str(e)}])


@bp.post("")
def customers_create():
    payload = _customer_payload()
    with request_transaction() as s:
        c = create_customer(s, name=payload["name"], address=address_from_resource(payload["address"]))
        resource = customer_to_resource(c)
    return jsonify(resource), 201


@bp.put("/<customer_uuid>")
def customers_update(customer_uuid: str):
    cid = _parse_uuid(customer_uuid)
    payload = _customer_payload()
    with request_transaction() as s:
        c = update_customer(s, cid, name=payload["name"], address=address_from_resource(payload["address"]))
        resource = customer_to_resource(c)
    return jsonify(resource), 200


@bp.delete("/<customer_uuid>")
def customers_delete(customer_uuid: str):
    cid = _parse_uuid(customer_uuid)
    with request_transaction() as s:
        delete_customer(s, cid)
    return "", 200


@bp.get("")
def customers_list():
    page = find_all_customers(db_session(), _page_request())
    return jsonify(customer_list_to_resource(page))


@bp.get("/suggestions")
def customers_suggestions():
    term = request.args.get("term")
    if term is None:
        raise BadRequestError(
            "Query parameter 'term' is required.",
            details=[{"field": "term", "message": "Required."}],
        )
    page = find_suggestions_for_customer(db_session(), term, _page_request())
    return jsonify(customer_list_to_resource(page))


@bp.get("/<customer_uuid>")
def customers_detail(customer_uuid: str):
    c = find_customer_by_uuid(db_session(), _parse_uuid(customer_uuid))
    return jsonify(customer_to_resource(c))
