"""
Customer entity and its owned Address value object.

The address has no identity of its own; it is mapped onto the customer row as a composite.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, composite, mapped_column

from app.crm.models import Base


@dataclass(frozen=True)
class Address:
    street: str | None = None
    house_number: str | None = None
    postal_code: str | None = None
    city: str | None = None


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        Index("idx_customers_uuid", "uuid", unique=True),
        Index("idx_customers_name", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, nullable=False, default=uuid4)

    name: Mapped[str] = mapped_column(Text, nullable=False)

    street: Mapped[str | None] = mapped_column(Text, nullable=True)
    house_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(Text, nullable=True)

    address: Mapped[Address] = composite(Address, "street", "house_number", "postal_code", "city")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Customer uuid={self.uuid} name={self.name!r}>"
