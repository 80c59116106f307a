"""
person_registry.api.routers.addresses

Address endpoints.

Responsibilities:
- Map HTTP requests to AddressRepo calls.
- Expose addresses by external identifier only.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from person_registry.api.deps import address_repo
from person_registry.auth.deps import read_scope, write_scope
from person_registry.auth.models import Claims
from person_registry.db.models import Address
from person_registry.db.repositories.addresses import AddressRepo
from person_registry.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/address", tags=["address"])


class NewAddress(BaseModel):
    building: str
    street: str | None = None
    town_or_city: str | None = None
    postcode: str


class UpdateAddress(BaseModel):
    building: str | None = None
    street: str | None = None
    town_or_city: str | None = None
    postcode: str | None = None


class AddressResponse(BaseModel):
    id: uuid.UUID
    created: datetime
    last_edited: datetime
    building: str
    street: str | None
    town_or_city: str | None
    postcode: str


def to_response(address: Address) -> AddressResponse:
    return AddressResponse(
        id=address.uuid,
        created=address.created,
        last_edited=address.last_edited,
        building=address.building,
        street=address.street,
        town_or_city=address.town_or_city,
        postcode=address.postcode,
    )


@router.get("", response_model=list[AddressResponse])
async def list_addresses(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    claims: Claims = Depends(read_scope),
    repo: AddressRepo = Depends(address_repo),
) -> list[AddressResponse]:
    addresses = await repo.list_all(limit=limit, offset=offset)
    log.info("addresses_listed", client=claims.subject, count=len(addresses))
    return [to_response(a) for a in addresses]


@router.post("", response_model=AddressResponse, status_code=HTTP_201_CREATED)
async def create_address(
    body: NewAddress,
    claims: Claims = Depends(write_scope),
    repo: AddressRepo = Depends(address_repo),
) -> AddressResponse:
    address = await repo.create(**body.model_dump())
    return to_response(address)


@router.get("/{address_id}", response_model=AddressResponse)
async def get_address(
    address_id: uuid.UUID,
    claims: Claims = Depends(read_scope),
    repo: AddressRepo = Depends(address_repo),
) -> AddressResponse:
    return to_response(await repo.get(address_id))


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: uuid.UUID,
    body: UpdateAddress,
    claims: Claims = Depends(write_scope),
    repo: AddressRepo = Depends(address_repo),
) -> AddressResponse:
    # Only fields present in the body are changed; explicit null clears optionals.
    address = await repo.update(address_id, body.model_dump(exclude_unset=True))
    return to_response(address)


@router.delete("/{address_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_address(
    address_id: uuid.UUID,
    claims: Claims = Depends(write_scope),
    repo: AddressRepo = Depends(address_repo),
) -> Response:
    await repo.delete(address_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
