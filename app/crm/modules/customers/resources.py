from __future__ import annotations

from typing import Any

from app.crm.modules.customers.models import Address, Customer
from app.crm.pagination import Page


def address_from_resource(data: dict[str, Any]) -> Address:
    return Address(
        street=data.get("street"),
        house_number=data.get("houseNumber"),
        postal_code=data.get("postalCode"),
        city=data.get("city"),
    )


def address_to_resource(address: Address | None) -> dict[str, Any]:
    a = address or Address()
    return {
        "street": a.street,
        "houseNumber": a.house_number,
        "postalCode": a.postal_code,
        "city": a.city,
    }


def customer_to_resource(c: Customer) -> dict[str, Any]:
    return {
        "uuid": str(c.uuid),
        "name": c.name,
        "address": address_to_resource(c.address),
    }


def customer_list_to_resource(page: Page[Customer]) -> dict[str, Any]:
    return {
        "content": [customer_to_resource(c) for c in page.content],
        "number": page.number,
        "size": page.size,
        "totalElements": page.total_elements,
        "totalPages": page.total_pages,
        "first": page.is_first,
        "last": page.is_last,
    }
