"""
person_registry.db.repositories.addresses

Repository for `Address` entities.

Responsibilities:
- Create/read/update/delete addresses, one transaction per operation.
- Enforce referential restriction on delete: an address still referenced by a
  person cannot be removed.
- Resolve address references for PersonRepo inside its transaction.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from person_registry import validation
from person_registry.db.models import Address, Person, utcnow
from person_registry.errors import AddressInUse, IdentifierCollision, NotFoundError
from person_registry.observability.logging import get_logger

log = get_logger(__name__)

ADDRESS_FIELDS = ("building", "street", "town_or_city", "postcode")


def validate_address_field(field: str, value: Any) -> str | None:
    if field == "building":
        return validation.required_text(field, value, max_length=64)
    if field == "postcode":
        return validation.required_text(field, value, max_length=8)
    return validation.optional_text(field, value, max_length=64)


def new_address(
    *,
    building: Any,
    postcode: Any,
    street: Any = None,
    town_or_city: Any = None,
) -> Address:
    """
    Validate fields and build an unsaved Address with fresh identifier/timestamps.
    """

    values = {
        "building": building,
        "street": street,
        "town_or_city": town_or_city,
        "postcode": postcode,
    }
    now = utcnow()
    return Address(
        uuid=uuid.uuid4(),
        created=now,
        last_edited=now,
        **{k: validate_address_field(k, v) for k, v in values.items()},
    )


class AddressRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def create(
        self,
        *,
        building: Any,
        postcode: Any,
        street: Any = None,
        town_or_city: Any = None,
    ) -> Address:
        address = new_address(
            building=building, postcode=postcode, street=street, town_or_city=town_or_city
        )
        async with self._sessions.begin() as session:
            session.add(address)
            try:
                await session.flush()
            except IntegrityError as e:
                raise IdentifierCollision("Address identifier already exists") from e
        log.info("address_created", address_id=str(address.uuid))
        return address

    async def get(self, external_id: uuid.UUID) -> Address:
        async with self._sessions() as session:
            address = await self._find(session, external_id)
        if address is None:
            raise NotFoundError(f"Address not found for the UUID: {external_id}")
        return address

    async def list_all(self, *, limit: int = 100, offset: int = 0) -> list[Address]:
        stmt = select(Address).order_by(Address.id).limit(limit).offset(offset)
        async with self._sessions() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        async with self._sessions() as session:
            return (await session.execute(select(func.count()).select_from(Address))).scalar_one()

    async def update(self, external_id: uuid.UUID, changes: Mapping[str, Any]) -> Address:
        validation.known_fields(changes, ADDRESS_FIELDS)
        values = {k: validate_address_field(k, v) for k, v in changes.items()}

        async with self._sessions.begin() as session:
            address = await self._find(session, external_id, lock=True)
            if address is None:
                raise NotFoundError(f"Address not found for the UUID: {external_id}")
            if not values:
                return address
            for field, value in values.items():
                setattr(address, field, value)
            address.last_edited = utcnow()
        log.info("address_updated", address_id=str(external_id), fields=sorted(values))
        return address

    async def delete(self, external_id: uuid.UUID) -> None:
        async with self._sessions.begin() as session:
            # Row lock first: a concurrent person write sharing this address
            # (FOR SHARE in resolve_reference) serializes against us.
            address = await self._find(session, external_id, lock=True)
            if address is None:
                raise NotFoundError(f"Address not found for the UUID: {external_id}")

            refs = (
                await session.execute(
                    select(func.count()).select_from(Person).where(Person.address == address.uuid)
                )
            ).scalar_one()
            if refs:
                raise AddressInUse(f"Address {external_id} is referenced by {refs} person(s)")

            await session.delete(address)
            try:
                await session.flush()
            except IntegrityError as e:
                # Foreign-key restriction is the storage-level backstop.
                raise AddressInUse(f"Address {external_id} is still referenced") from e
        log.info("address_deleted", address_id=str(external_id))

    async def resolve_reference(
        self, session: AsyncSession, external_id: uuid.UUID
    ) -> Address | None:
        """
        Look up a referenced address inside the caller's transaction, holding a
        shared row lock until that transaction ends.
        """

        return await self._find(session, external_id, lock=True, shared=True)

    @staticmethod
    async def _find(
        session: AsyncSession,
        external_id: uuid.UUID,
        *,
        lock: bool = False,
        shared: bool = False,
    ) -> Address | None:
        stmt = select(Address).where(
            Address.uuid == validation.external_id("address id", external_id)
        )
        if lock:
            stmt = stmt.with_for_update(read=shared)
        return (await session.execute(stmt)).scalar_one_or_none()


# --- Module Notes -----------------------------------------------------------
# SQLite ignores FOR UPDATE/FOR SHARE; its database-level write lock and the
# foreign-key pragma (see db.session) give the same guarantees in dev/test.
