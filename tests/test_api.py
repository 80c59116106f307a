"""
tests.test_api

End-to-end HTTP behavior: status codes, scope checks and error mapping.
"""

from __future__ import annotations

import uuid

import pytest

ADDRESS = {
    "building": "221B",
    "street": "Baker Street",
    "town_or_city": "London",
    "postcode": "NW1 6XE",
}
PERSON = {"first_name": "Sherlock", "family_name": "Holmes", "date_of_birth": "1854-01-06"}


@pytest.mark.asyncio
async def test_address_lifecycle(client, auth_headers) -> None:
    headers = auth_headers()

    r = await client.post("/address", json=ADDRESS, headers=headers)
    assert r.status_code == 201
    created = r.json()
    address_id = created["id"]
    assert created["postcode"] == "NW1 6XE"

    r = await client.get(f"/address/{address_id}", headers=headers)
    assert r.status_code == 200
    assert r.json() == created

    r = await client.put(f"/address/{address_id}", json={"street": None}, headers=headers)
    assert r.status_code == 200
    assert r.json()["street"] is None
    assert r.json()["building"] == "221B"

    r = await client.get("/address", headers=headers)
    assert [a["id"] for a in r.json()] == [address_id]

    r = await client.delete(f"/address/{address_id}", headers=headers)
    assert r.status_code == 204

    r = await client.get(f"/address/{address_id}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_person_with_dangling_address_is_rejected(client, auth_headers) -> None:
    headers = auth_headers()

    r = await client.post("/person", json={**PERSON, "address": str(uuid.uuid4())}, headers=headers)

    assert r.status_code == 400
    assert (await client.get("/person", headers=headers)).json() == []


@pytest.mark.asyncio
async def test_referenced_address_delete_is_conflict(client, auth_headers) -> None:
    headers = auth_headers()
    address_id = (await client.post("/address", json=ADDRESS, headers=headers)).json()["id"]
    r = await client.post("/person", json={**PERSON, "address": address_id}, headers=headers)
    assert r.status_code == 201
    assert r.json()["address"] == address_id

    r = await client.delete(f"/address/{address_id}", headers=headers)

    assert r.status_code == 409
    assert (await client.get(f"/address/{address_id}", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_read_only_client_cannot_write(client, auth_headers) -> None:
    r = await client.post("/address", json=ADDRESS, headers=auth_headers(scope=["read"]))

    assert r.status_code == 403
    assert r.json() == {"message": "Client requires the scope: write"}


@pytest.mark.asyncio
async def test_write_only_client_cannot_read(client, auth_headers) -> None:
    r = await client.get("/person", headers=auth_headers(scope="write"))

    assert r.status_code == 403


@pytest.mark.asyncio
async def test_missing_body_field_is_bad_request(client, auth_headers) -> None:
    r = await client.post("/address", json={"building": "1"}, headers=auth_headers())

    assert r.status_code == 400
    assert r.json()["message"] == "Invalid request"


@pytest.mark.asyncio
async def test_blank_building_is_bad_request(client, auth_headers) -> None:
    r = await client.post("/address", json={**ADDRESS, "building": ""}, headers=auth_headers())

    assert r.status_code == 400
    assert "building" in r.json()["message"]


@pytest.mark.asyncio
async def test_future_date_of_birth_is_bad_request(client, auth_headers) -> None:
    r = await client.post(
        "/person", json={**PERSON, "date_of_birth": "2999-01-01"}, headers=auth_headers()
    )

    assert r.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/address", "/person"])
async def test_unknown_identifier_is_not_found(client, auth_headers, path) -> None:
    r = await client.get(f"{path}/{uuid.uuid4()}", headers=auth_headers())

    assert r.status_code == 404


@pytest.mark.asyncio
async def test_malformed_identifier_is_bad_request(client, auth_headers) -> None:
    r = await client.get("/person/12345", headers=auth_headers())

    assert r.status_code == 400


@pytest.mark.asyncio
async def test_person_lifecycle_with_created_address(client, auth_headers) -> None:
    headers = auth_headers()
    person = (await client.post("/person", json=PERSON, headers=headers)).json()
    assert person["address"] is None

    r = await client.post(f"/person/{person['id']}/address", json=ADDRESS, headers=headers)
    assert r.status_code == 201
    address_id = r.json()["id"]

    r = await client.get(f"/person/{person['id']}", headers=headers)
    assert r.json()["address"] == address_id
    assert r.json()["created"] == person["created"]

    r = await client.put(f"/person/{person['id']}", json={"family_name": "Watson"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["family_name"] == "Watson"
    assert r.json()["address"] == address_id

    r = await client.delete(f"/person/{person['id']}", headers=headers)
    assert r.status_code == 204
    assert (await client.get(f"/person/{person['id']}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_address_for_unknown_person_is_not_found(client, auth_headers) -> None:
    headers = auth_headers()

    r = await client.post(f"/person/{uuid.uuid4()}/address", json=ADDRESS, headers=headers)

    assert r.status_code == 404
    assert (await client.get("/address", headers=headers)).json() == []
