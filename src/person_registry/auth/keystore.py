"""
person_registry.auth.keystore

Signing-key discovery and caching for the external authorization server.

Responsibilities:
- Fetch the JWKS document from the key-discovery endpoint (`JwksClient`).
- Parse it into verification keys, skipping entries we cannot use.
- Cache the key set with a TTL and refresh it on demand, including one
  refresh for an unrecognized key id (key rotation).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import httpx
from jwt import PyJWK
from jwt.exceptions import InvalidKeyError, PyJWKError

from person_registry.errors import KeyDiscoveryError, UnknownKey
from person_registry.observability.logging import get_logger

log = get_logger(__name__)

# Asymmetric algorithms only: a public JWKS can never legitimately verify HS*/none.
SUPPORTED_ALGORITHMS: frozenset[str] = frozenset(
    {
        "RS256",
        "RS384",
        "RS512",
        "PS256",
        "PS384",
        "PS512",
        "ES256",
        "ES384",
        "ES512",
        "EdDSA",
    }
)

_EC_CURVE_ALGORITHMS = {"P-256": "ES256", "P-384": "ES384", "P-521": "ES512"}

JwksFetcher = Callable[[], Awaitable[Mapping[str, Any]]]


@dataclass(frozen=True, slots=True)
class SigningKey:
    key_id: str
    algorithm: str
    key: Any


@dataclass(frozen=True, slots=True)
class _KeySet:
    keys: Mapping[str, SigningKey]
    fetched_at: float


class JwksClient:
    """
    Fetches the authorization server's JWKS document over HTTP.
    """

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._transport = transport

    async def __call__(self) -> Mapping[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as http:
            r = await http.get(self._url, headers={"Accept": "application/json"})
            r.raise_for_status()
            return r.json()


def _infer_algorithm(entry: Mapping[str, Any]) -> str | None:
    alg = entry.get("alg")
    if alg:
        return str(alg)
    kty = entry.get("kty")
    if kty == "RSA":
        return "RS256"
    if kty == "EC":
        return _EC_CURVE_ALGORITHMS.get(str(entry.get("crv")))
    if kty == "OKP":
        return "EdDSA"
    return None


def parse_jwks(document: Mapping[str, Any]) -> dict[str, SigningKey]:
    """
    Turn a JWKS document into `{kid: SigningKey}`.

    Raises ValueError when the document itself is malformed; individual
    unusable keys are skipped with a warning.
    """

    entries = document.get("keys") if isinstance(document, Mapping) else None
    if not isinstance(entries, list):
        raise ValueError("JWKS document has no 'keys' list")

    keys: dict[str, SigningKey] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        kid = entry.get("kid")
        if not kid:
            log.warning("jwks_key_skipped", reason="missing kid")
            continue
        if entry.get("use", "sig") != "sig":
            continue
        alg = _infer_algorithm(entry)
        if alg not in SUPPORTED_ALGORITHMS:
            log.warning("jwks_key_skipped", kid=kid, reason="unsupported algorithm", alg=alg)
            continue
        try:
            jwk = PyJWK(dict(entry), algorithm=alg)
        except (PyJWKError, InvalidKeyError, ValueError) as e:
            log.warning("jwks_key_skipped", kid=kid, reason=str(e))
            continue
        keys[str(kid)] = SigningKey(key_id=str(kid), algorithm=alg, key=jwk.key)
    return keys


class KeyStore:
    """
    Current set of verification keys for the configured authorization server.

    The key set is an immutable mapping swapped in whole on refresh, so
    concurrent readers never see a half-updated set. Refreshes are serialized
    by a lock; a caller that waited while another refreshed reuses that result.
    """

    def __init__(
        self,
        fetch_jwks: JwksFetcher,
        *,
        ttl_seconds: float = 300.0,
        refresh_cooldown_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch_jwks
        self._ttl = ttl_seconds
        self._cooldown = refresh_cooldown_seconds
        self._clock = clock
        self._key_set: _KeySet | None = None
        # Set after a fetch that failed or brought no new key ids; gates the next one.
        self._unproductive_at: float | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_jwks(cls, document: Mapping[str, Any], **kwargs: Any) -> KeyStore:
        """
        Build a store over a fixed key document (tests, air-gapped setups).
        Refreshes re-read the same document.
        """

        async def _fixed() -> Mapping[str, Any]:
            return document

        store = cls(_fixed, **kwargs)
        store._key_set = _KeySet(
            keys=MappingProxyType(parse_jwks(document)), fetched_at=store._clock()
        )
        return store

    @property
    def key_ids(self) -> frozenset[str]:
        current = self._key_set
        return frozenset(current.keys) if current is not None else frozenset()

    def _is_stale(self, key_set: _KeySet) -> bool:
        return self._clock() - key_set.fetched_at >= self._ttl

    async def get(self, key_id: str) -> SigningKey:
        current = self._key_set
        if current is not None and not self._is_stale(current):
            key = current.keys.get(key_id)
            if key is not None:
                return key

        # Stale set or unknown kid (possible rotation): one refresh, then decide.
        await self.refresh()

        current = self._key_set
        if current is None:
            raise KeyDiscoveryError("No signing keys available from the authorization server")
        key = current.keys.get(key_id)
        if key is None:
            raise UnknownKey(f"Unknown signing key: {key_id}")
        return key

    async def refresh(self) -> None:
        seen = self._key_set
        async with self._lock:
            if self._key_set is not seen:
                # Someone refreshed while we waited for the lock.
                return

            now = self._clock()
            if self._unproductive_at is not None and now - self._unproductive_at < self._cooldown:
                return

            try:
                document = await self._fetch()
                keys = parse_jwks(document)
            except (httpx.HTTPError, ValueError) as e:
                log.warning(
                    "jwks_refresh_failed",
                    error=str(e),
                    cached_keys=sorted(self.key_ids),
                )
                self._unproductive_at = now
                if self._key_set is None:
                    raise KeyDiscoveryError("Unable to fetch signing keys") from e
                return

            new_ids = frozenset(keys) - self.key_ids
            self._unproductive_at = None if new_ids else now
            self._key_set = _KeySet(keys=MappingProxyType(keys), fetched_at=now)
            log.info("jwks_refreshed", key_ids=sorted(keys), new_key_ids=sorted(new_ids))


# --- Module Notes -----------------------------------------------------------
# A failed refresh never drops cached keys; it only delays discovering new ones.
# The cooldown only follows a failed fetch or one that brought no new key ids, so
# rotation is picked up at once while random key ids cannot force a fetch storm.
