"""
tests.test_token_validator

Signature, algorithm and registered-claim checks of TokenValidator.
"""

from __future__ import annotations

import time
from typing import Any

import jwt
import pytest

from person_registry.auth.keystore import KeyStore
from person_registry.auth.validator import TokenValidator
from person_registry.errors import (
    AudienceMismatch,
    InvalidSignature,
    IssuerMismatch,
    MalformedToken,
    TokenExpired,
    TokenNotYetValid,
    UnknownKey,
    UnsupportedAlgorithm,
)
from tests.helpers import AUDIENCE, ISSUER, KID, b64_json, public_jwk


class CountingFetch:
    def __init__(self, document: dict[str, Any]) -> None:
        self.document = document
        self.calls = 0

    async def __call__(self) -> dict[str, Any]:
        self.calls += 1
        return self.document


@pytest.fixture
def validator(jwks) -> TokenValidator:
    return TokenValidator(key_store=KeyStore.from_jwks(jwks), issuer=ISSUER, audience=AUDIENCE)


@pytest.mark.asyncio
async def test_valid_token_returns_claims(validator, mint_token, claims_payload) -> None:
    token = mint_token()

    claims = await validator.validate(token)

    assert claims.subject == "test-client"
    assert claims.issuer == ISSUER
    assert claims.audience == (AUDIENCE,)
    assert claims.scopes == frozenset({"read", "write"})
    assert claims.authorities == frozenset({"ROLE_SYSTEM"})
    assert claims.raw == jwt.decode(token, options={"verify_signature": False})


@pytest.mark.asyncio
async def test_space_delimited_scope_is_split(validator, mint_token) -> None:
    claims = await validator.validate(mint_token(scope="read write"))

    assert claims.has_scope("read")
    assert claims.has_scope("write")


@pytest.mark.asyncio
async def test_audience_list_containing_service_is_accepted(validator, mint_token) -> None:
    claims = await validator.validate(mint_token(aud=["other-api", AUDIENCE]))

    assert AUDIENCE in claims.audience


@pytest.mark.asyncio
async def test_expired_token_is_rejected(validator, mint_token) -> None:
    with pytest.raises(TokenExpired):
        await validator.validate(mint_token(exp=int(time.time()) - 3600))


@pytest.mark.asyncio
async def test_token_before_nbf_is_rejected(validator, mint_token) -> None:
    with pytest.raises(TokenNotYetValid):
        await validator.validate(mint_token(nbf=int(time.time()) + 3600))


@pytest.mark.asyncio
async def test_issuer_mismatch_is_rejected(validator, mint_token) -> None:
    with pytest.raises(IssuerMismatch):
        await validator.validate(mint_token(iss="https://evil.example.test"))


@pytest.mark.asyncio
async def test_audience_mismatch_is_rejected(validator, mint_token) -> None:
    with pytest.raises(AudienceMismatch):
        await validator.validate(mint_token(aud="some-other-service"))


@pytest.mark.asyncio
async def test_missing_audience_is_rejected(validator, mint_token) -> None:
    with pytest.raises(AudienceMismatch):
        await validator.validate(mint_token(aud=None))


@pytest.mark.asyncio
async def test_signature_from_another_key_is_rejected(
    validator, mint_token, other_private_key
) -> None:
    with pytest.raises(InvalidSignature):
        await validator.validate(mint_token(key=other_private_key))


@pytest.mark.asyncio
async def test_unknown_key_id_is_rejected(validator, mint_token) -> None:
    with pytest.raises(UnknownKey):
        await validator.validate(mint_token(kid="rotated-away"))


@pytest.mark.asyncio
async def test_missing_key_id_is_rejected(validator, mint_token) -> None:
    with pytest.raises(MalformedToken):
        await validator.validate(mint_token(kid=None))


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(validator) -> None:
    with pytest.raises(MalformedToken):
        await validator.validate("not-a-jwt")


@pytest.mark.asyncio
async def test_alg_none_is_rejected_without_key_lookup(jwks, claims_payload) -> None:
    fetch = CountingFetch(jwks)
    validator = TokenValidator(key_store=KeyStore(fetch), issuer=ISSUER, audience=AUDIENCE)
    token = f"{b64_json({'alg': 'none', 'kid': KID})}.{b64_json(claims_payload())}."

    with pytest.raises(UnsupportedAlgorithm):
        await validator.validate(token)
    assert fetch.calls == 0


@pytest.mark.asyncio
async def test_hmac_token_is_rejected_without_key_lookup(jwks, claims_payload) -> None:
    fetch = CountingFetch(jwks)
    validator = TokenValidator(key_store=KeyStore(fetch), issuer=ISSUER, audience=AUDIENCE)
    token = jwt.encode(
        claims_payload(),
        "a-shared-secret-that-is-long-enough-for-hs256",
        algorithm="HS256",
        headers={"kid": KID},
    )

    with pytest.raises(UnsupportedAlgorithm):
        await validator.validate(token)
    assert fetch.calls == 0


@pytest.mark.asyncio
async def test_algorithm_must_match_advertised_key(private_key, mint_token) -> None:
    store = KeyStore.from_jwks({"keys": [public_jwk(private_key, KID, alg="RS384")]})
    validator = TokenValidator(key_store=store, issuer=ISSUER, audience=AUDIENCE)

    with pytest.raises(UnsupportedAlgorithm):
        await validator.validate(mint_token(algorithm="RS256"))


@pytest.mark.asyncio
async def test_leeway_tolerates_small_clock_skew(jwks, mint_token) -> None:
    validator = TokenValidator(
        key_store=KeyStore.from_jwks(jwks), issuer=ISSUER, audience=AUDIENCE, leeway_seconds=60
    )

    claims = await validator.validate(mint_token(exp=int(time.time()) - 5))

    assert claims.subject == "test-client"


@pytest.mark.asyncio
async def test_non_string_key_id_is_malformed(validator, claims_payload) -> None:
    token = f"{b64_json({'alg': 'RS256', 'kid': 123})}.{b64_json(claims_payload())}.c2ln"

    with pytest.raises(MalformedToken):
        await validator.validate(token)
