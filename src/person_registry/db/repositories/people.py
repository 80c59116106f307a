"""
person_registry.db.repositories.people

Repository for `Person` entities.

Responsibilities:
- Create/read/update/delete people, one transaction per operation.
- Validate address references against existing addresses in the same
  transaction as the write, so nothing is persisted for a dangling reference.
- Create an address and attach it to a person atomically.
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
from person_registry.db.repositories.addresses import AddressRepo, new_address
from person_registry.errors import IdentifierCollision, InvalidReference, NotFoundError
from person_registry.observability.logging import get_logger

log = get_logger(__name__)

PERSON_FIELDS = ("first_name", "family_name", "date_of_birth", "address")


def _validate_person_field(field: str, value: Any) -> Any:
    if field in ("first_name", "family_name"):
        return validation.required_text(field, value, max_length=64)
    if field == "date_of_birth":
        return validation.past_date(field, value)
    if value is None:
        return None
    return validation.external_id(field, value)


# SQLSTATE foreign_key_violation (asyncpg and psycopg expose it as `sqlstate`).
_PG_FOREIGN_KEY_VIOLATION = "23503"
_SQLITE_FOREIGN_KEY_VIOLATION = "SQLITE_CONSTRAINT_FOREIGNKEY"


def is_foreign_key_violation(e: IntegrityError) -> bool:
    orig = e.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == _PG_FOREIGN_KEY_VIOLATION
    errorname = getattr(orig, "sqlite_errorname", None)
    if errorname == _SQLITE_FOREIGN_KEY_VIOLATION:
        return True
    if errorname not in (None, "SQLITE_CONSTRAINT"):
        return False
    # Without an extended result code SQLite only tells us in the message.
    return "FOREIGN KEY" in str(orig).upper()


def classify_integrity_error(e: IntegrityError) -> Exception:
    if is_foreign_key_violation(e):
        return InvalidReference("Address reference does not exist")
    return IdentifierCollision("Person identifier already exists")


class PersonRepo:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        addresses: AddressRepo | None = None,
    ) -> None:
        self._sessions = session_factory
        self._addresses = addresses or AddressRepo(session_factory)

    async def create(
        self,
        *,
        first_name: Any,
        family_name: Any,
        date_of_birth: Any,
        address: Any = None,
    ) -> Person:
        values = {
            k: _validate_person_field(k, v)
            for k, v in {
                "first_name": first_name,
                "family_name": family_name,
                "date_of_birth": date_of_birth,
                "address": address,
            }.items()
        }
        now = utcnow()
        person = Person(uuid=uuid.uuid4(), created=now, last_edited=now, **values)

        async with self._sessions.begin() as session:
            await self._check_reference(session, person.address)
            session.add(person)
            try:
                await session.flush()
            except IntegrityError as e:
                raise classify_integrity_error(e) from e
        log.info("person_created", person_id=str(person.uuid))
        return person

    async def get(self, external_id: uuid.UUID) -> Person:
        async with self._sessions() as session:
            person = await self._find(session, external_id)
        if person is None:
            raise NotFoundError(f"Person not found for the UUID: {external_id}")
        return person

    async def list_all(self, *, limit: int = 100, offset: int = 0) -> list[Person]:
        stmt = select(Person).order_by(Person.id).limit(limit).offset(offset)
        async with self._sessions() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        async with self._sessions() as session:
            return (await session.execute(select(func.count()).select_from(Person))).scalar_one()

    async def update(self, external_id: uuid.UUID, changes: Mapping[str, Any]) -> Person:
        validation.known_fields(changes, PERSON_FIELDS)
        values = {k: _validate_person_field(k, v) for k, v in changes.items()}

        async with self._sessions.begin() as session:
            person = await self._find(session, external_id, lock=True)
            if person is None:
                raise NotFoundError(f"Person not found for the UUID: {external_id}")
            if not values:
                return person
            if "address" in values:
                await self._check_reference(session, values["address"])
            for field, value in values.items():
                setattr(person, field, value)
            person.last_edited = utcnow()
            try:
                await session.flush()
            except IntegrityError as e:
                raise classify_integrity_error(e) from e
        log.info("person_updated", person_id=str(external_id), fields=sorted(values))
        return person

    async def delete(self, external_id: uuid.UUID) -> None:
        async with self._sessions.begin() as session:
            person = await self._find(session, external_id, lock=True)
            if person is None:
                raise NotFoundError(f"Person not found for the UUID: {external_id}")
            await session.delete(person)
        log.info("person_deleted", person_id=str(external_id))

    async def create_address_for(
        self,
        external_id: uuid.UUID,
        *,
        building: Any,
        postcode: Any,
        street: Any = None,
        town_or_city: Any = None,
    ) -> Address:
        """
        Create an address and point the person at it in one transaction.
        The person's previous address (if any) is left in place, unreferenced.
        """

        address = new_address(
            building=building, postcode=postcode, street=street, town_or_city=town_or_city
        )
        async with self._sessions.begin() as session:
            person = await self._find(session, external_id, lock=True)
            if person is None:
                raise NotFoundError(f"Person not found for the UUID: {external_id}")
            session.add(address)
            try:
                await session.flush()
            except IntegrityError as e:
                raise IdentifierCollision("Address identifier already exists") from e
            person.address = address.uuid
            person.last_edited = utcnow()
        log.info(
            "person_address_created",
            person_id=str(external_id),
            address_id=str(address.uuid),
        )
        return address

    async def _check_reference(self, session: AsyncSession, address_id: uuid.UUID | None) -> None:
        if address_id is None:
            return
        if await self._addresses.resolve_reference(session, address_id) is None:
            raise InvalidReference(f"Address not found for the UUID: {address_id}")

    @staticmethod
    async def _find(
        session: AsyncSession, external_id: uuid.UUID, *, lock: bool = False
    ) -> Person | None:
        stmt = select(Person).where(
            Person.uuid == validation.external_id("person id", external_id)
        )
        if lock:
            stmt = stmt.with_for_update()
        return (await session.execute(stmt)).scalar_one_or_none()
