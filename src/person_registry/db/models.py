"""
person_registry.db.models

Persistence schema for the registry.

Responsibilities:
- Define the `address` and `person` tables.
- Keep the dual-identifier scheme: a sequential internal `id` that never leaves
  the service, and a unique external `uuid` used by clients and by
  cross-entity references.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

from sqlalchemy import Date, ForeignKey, Integer, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from person_registry.db.base import Base


def utcnow() -> datetime:
    # Naive UTC, matching TIMESTAMP (without time zone) columns.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class Address(Base):
    __tablename__ = "address"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[uuid.UUID] = mapped_column(SAUuid(as_uuid=True), unique=True, nullable=False)

    created: Mapped[datetime] = mapped_column(nullable=False)
    last_edited: Mapped[datetime] = mapped_column(nullable=False)

    building: Mapped[str] = mapped_column(Text, nullable=False)
    street: Mapped[str | None] = mapped_column(Text, nullable=True)
    town_or_city: Mapped[str | None] = mapped_column(Text, nullable=True)
    postcode: Mapped[str] = mapped_column(Text, nullable=False)


class Person(Base):
    __tablename__ = "person"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[uuid.UUID] = mapped_column(SAUuid(as_uuid=True), unique=True, nullable=False)

    created: Mapped[datetime] = mapped_column(nullable=False)
    last_edited: Mapped[datetime] = mapped_column(nullable=False)

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    family_name: Mapped[str] = mapped_column(Text, nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)

    # References the external identifier, not address.id. No ondelete: restrict.
    address: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("address.uuid"), nullable=True, index=True
    )


# --- Module Notes -----------------------------------------------------------
# Identifiers and timestamps are assigned by the repositories, not by column
# defaults, so the schema behaves the same on PostgreSQL and SQLite.
