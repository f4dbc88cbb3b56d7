"""
Customer business rules.

Functions take the session first and never commit: the caller owns the transaction
(`request_transaction()` in handlers, `session_scope()` in scripts and startup tasks).
Every mutation writes an audit event in the same transaction.

Names are stored trimmed. Blank or whitespace-only address fields are stored as
null, so `{"street": ""}` reads back as `{"street": null}`.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from app.crm.audit import record_event
from app.crm.errors import NotFoundError
from app.crm.modules.customers.models import Address, Customer
from app.crm.pagination import Page, PageRequest, paginate

logger = logging.getLogger(__name__)

# Public sort property -> column
SORTABLE = {
    "name": Customer.name,
    "createdAt": Customer.created_at,
}

ADDRESS_FIELDS = ("street", "houseNumber", "postalCode", "city")


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_uuid: UUID) -> None:
        super().__init__(f"Customer {customer_uuid} not found.")
        self.customer_uuid = customer_uuid


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


def validate_customer_payload(payload: Any) -> list[ValidationError]:
    if not isinstance(payload, dict):
        return [ValidationError("body", "Request body must be a JSON object.")]
    errs: list[ValidationError] = []
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        errs.append(ValidationError("name", "Name is required."))
    address = payload.get("address")
    if not isinstance(address, dict):
        errs.append(ValidationError("address", "Address is required."))
        return errs
    for key in ADDRESS_FIELDS:
        value = address.get(key)
        if value is not None and not isinstance(value, str):
            errs.append(ValidationError(f"address.{key}", "Must be a string."))
    return errs


def _clean(value: str | None) -> str | None:
    return (value or "").strip() or None


def _normalize_address(address: Address) -> Address:
    return Address(
        street=_clean(address.street),
        house_number=_clean(address.house_number),
        postal_code=_clean(address.postal_code),
        city=_clean(address.city),
    )


def _snapshot(c: Customer) -> dict[str, Any]:
    return {"name": c.name, **asdict(c.address or Address())}


def get_customer_by_uuid(s: Session, customer_uuid: UUID) -> Customer | None:
    return s.query(Customer).filter(Customer.uuid == customer_uuid).one_or_none()


def find_customer_by_uuid(s: Session, customer_uuid: UUID) -> Customer:
    c = get_customer_by_uuid(s, customer_uuid)
    if c is None:
        raise CustomerNotFoundError(customer_uuid)
    return c


def count_customers(s: Session) -> int:
    return s.query(Customer).count()


def create_customer(s: Session, *, name: str, address: Address) -> Customer:
    name = (name or "").strip()
    if not name:
        raise ValueError("name is required")

    now = datetime.utcnow()
    c = Customer(
        uuid=uuid4(),
        name=name,
        address=_normalize_address(address),
        created_at=now,
        updated_at=now,
    )
    s.add(c)
    s.flush()

    record_event(
        s,
        action="customer.create",
        entity_type="Customer",
        entity_id=str(c.uuid),
        metadata=_snapshot(c),
    )
    logger.info("Created customer uuid=%s name=%r", c.uuid, c.name)
    return c


def update_customer(s: Session, customer_uuid: UUID, *, name: str, address: Address) -> Customer:
    name = (name or "").strip()
    if not name:
        raise ValueError("name is required")

    c = find_customer_by_uuid(s, customer_uuid)
    before = _snapshot(c)

    c.name = name
    c.address = _normalize_address(address)
    c.updated_at = datetime.utcnow()
    s.flush()

    after = _snapshot(c)
    fields_changed = [k for k in before.keys() if before[k] != after[k]]
    record_event(
        s,
        action="customer.update",
        entity_type="Customer",
        entity_id=str(c.uuid),
        metadata={"before": before, "after": after, "fields_changed": fields_changed},
    )
    logger.info("Updated customer uuid=%s fields_changed=%s", c.uuid, fields_changed)
    return c


def delete_customer(s: Session, customer_uuid: UUID) -> bool:
    """
    Hard-delete the customer. Deleting an unknown uuid is a no-op and returns False.
    """
    c = get_customer_by_uuid(s, customer_uuid)
    if c is None:
        logger.info("Delete of unknown customer uuid=%s ignored", customer_uuid)
        return False
    record_event(
        s,
        action="customer.delete",
        entity_type="Customer",
        entity_id=str(c.uuid),
        metadata=_snapshot(c),
    )
    s.delete(c)
    s.flush()
    logger.info("Deleted customer uuid=%s", customer_uuid)
    return True


def find_all_customers(s: Session, page_request: PageRequest) -> Page[Customer]:
    return paginate(s.query(Customer), page_request, sortable=SORTABLE, tiebreaker=Customer.id)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def find_suggestions_for_customer(s: Session, term: str, page_request: PageRequest) -> Page[Customer]:
    """
    Case-insensitive substring match on the customer name.
    LIKE wildcards in `term` match literally; a blank term matches every customer.
    """
    query = s.query(Customer)
    term = (term or "").strip()
    if term:
        query = query.filter(Customer.name.ilike(f"%{_escape_like(term)}%", escape="\\"))
    return paginate(query, page_request, sortable=SORTABLE, tiebreaker=Customer.id)
