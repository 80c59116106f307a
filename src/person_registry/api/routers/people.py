"""
person_registry.api.routers.people

Person endpoints.

Responsibilities:
- Map HTTP requests to PersonRepo calls.
- Create-and-attach an address for a person (`POST /person/{id}/address`).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from person_registry.api.deps import person_repo
from person_registry.api.routers.addresses import AddressResponse, NewAddress
from person_registry.api.routers.addresses import to_response as address_response
from person_registry.auth.deps import read_scope, write_scope
from person_registry.auth.models import Claims
from person_registry.db.models import Person
from person_registry.db.repositories.people import PersonRepo
from person_registry.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/person", tags=["person"])


class NewPerson(BaseModel):
    first_name: str
    family_name: str
    date_of_birth: date
    address: uuid.UUID | None = None


class UpdatePerson(BaseModel):
    first_name: str | None = None
    family_name: str | None = None
    date_of_birth: date | None = None
    address: uuid.UUID | None = None


class PersonResponse(BaseModel):
    id: uuid.UUID
    created: datetime
    last_edited: datetime
    first_name: str
    family_name: str
    date_of_birth: date
    address: uuid.UUID | None


def to_response(person: Person) -> PersonResponse:
    return PersonResponse(
        id=person.uuid,
        created=person.created,
        last_edited=person.last_edited,
        first_name=person.first_name,
        family_name=person.family_name,
        date_of_birth=person.date_of_birth,
        address=person.address,
    )


@router.get("", response_model=list[PersonResponse])
async def list_people(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    claims: Claims = Depends(read_scope),
    repo: PersonRepo = Depends(person_repo),
) -> list[PersonResponse]:
    people = await repo.list_all(limit=limit, offset=offset)
    log.info("people_listed", client=claims.subject, count=len(people))
    return [to_response(p) for p in people]


@router.post("", response_model=PersonResponse, status_code=HTTP_201_CREATED)
async def create_person(
    body: NewPerson,
    claims: Claims = Depends(write_scope),
    repo: PersonRepo = Depends(person_repo),
) -> PersonResponse:
    return to_response(await repo.create(**body.model_dump()))


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: uuid.UUID,
    claims: Claims = Depends(read_scope),
    repo: PersonRepo = Depends(person_repo),
) -> PersonResponse:
    return to_response(await repo.get(person_id))


@router.put("/{person_id}", response_model=PersonResponse)
async def update_person(
    person_id: uuid.UUID,
    body: UpdatePerson,
    claims: Claims = Depends(write_scope),
    repo: PersonRepo = Depends(person_repo),
) -> PersonResponse:
    # `"address": null` detaches the address; omitting the key leaves it unchanged.
    person = await repo.update(person_id, body.model_dump(exclude_unset=True))
    return to_response(person)


@router.delete("/{person_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_person(
    person_id: uuid.UUID,
    claims: Claims = Depends(write_scope),
    repo: PersonRepo = Depends(person_repo),
) -> Response:
    await repo.delete(person_id)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.post("/{person_id}/address", response_model=AddressResponse, status_code=HTTP_201_CREATED)
async def add_address(
    person_id: uuid.UUID,
    body: NewAddress,
    claims: Claims = Depends(write_scope),
    repo: PersonRepo = Depends(person_repo),
) -> AddressResponse:
    address = await repo.create_address_for(person_id, **body.model_dump())
    return address_response(address)
