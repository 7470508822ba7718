# SPDX-License-Identifier: MIT
"""
Oracle network client.

The oracle network is a black box reachable over an authenticated query
endpoint. A query carries the publication display string and two strictness
flags; the answer is either the ABI-encoded judgment bytes or a failure
reason. Every failure (transport, timeout, negative judgment) is classified
into an `OracleErrorKind` and returned, never raised, so callers can decide
whether to retry, wait or give up. The client does not sign anything.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import re
from typing import Any, Dict, Optional, Protocol

import aiohttp

from daoracle.common.errors import OracleErrorKind
from daoracle.common.request import AttestationRequest

LOG = logging.getLogger("daoracle.oracle")

_REASON_KINDS = {
    "notfound": OracleErrorKind.NOT_FOUND,
    "publicationnotfound": OracleErrorKind.NOT_FOUND,
    "publicationnotexists": OracleErrorKind.NOT_FOUND,
    "unknownpublication": OracleErrorKind.NOT_FOUND,
    "notyetavailable": OracleErrorKind.NOT_YET_AVAILABLE,
    "notavailable": OracleErrorKind.NOT_YET_AVAILABLE,
    "notfinalized": OracleErrorKind.NOT_YET_AVAILABLE,
    "pending": OracleErrorKind.NOT_YET_AVAILABLE,
    "timeout": OracleErrorKind.TIMEOUT,
}


def classify_reason(reason: str) -> OracleErrorKind:
    """Map an oracle failure reason to an error kind; unknown reasons mean the publication is bad."""
    key = re.sub(r"[^a-z]", "", str(reason or "").lower())
    return _REASON_KINDS.get(key, OracleErrorKind.INVALID_PUBLICATION)


@dataclasses.dataclass(frozen=True)
class OracleJudgment:
    payload: bytes = b""
    error: Optional[OracleErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: bytes) -> "OracleJudgment":
        return cls(payload=bytes(payload))

    @classmethod
    def failure(cls, kind: OracleErrorKind, detail: str = "") -> "OracleJudgment":
        return cls(error=kind, detail=detail)


class OracleClient(Protocol):
    async def query(self, request: AttestationRequest) -> OracleJudgment:
        ...


class HttpOracleClient:
    """Queries an oracle gateway over HTTP; usable as an async context manager."""

    def __init__(
        self,
        endpoint: str,
        caller: str = "",
        timeout: float = 30.0,
        strict_availability: bool = True,
        strict_finality: bool = True,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._endpoint = endpoint.rstrip("/")
        self._caller = caller
        self._timeout = timeout
        self._strict_availability = strict_availability
        self._strict_finality = strict_finality
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> "HttpOracleClient":
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
        self._owns_session = False

    def _payload(self, request: AttestationRequest) -> Dict[str, Any]:
        payload = request.to_query(self._strict_availability, self._strict_finality)
        if self._caller:
            payload["caller"] = self._caller
        return payload

    async def query(self, request: AttestationRequest) -> OracleJudgment:
        if self._session is None:
            async with aiohttp.ClientSession() as session:
                return await self._query(session, request)
        return await self._query(self._session, request)

    async def _query(self, session: aiohttp.ClientSession, request: AttestationRequest) -> OracleJudgment:
        url = f"{self._endpoint}/query"
        display = request.display_string
        LOG.info("querying oracle for %s", display)
        try:
            async with session.post(
                url,
                json=self._payload(request),
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    LOG.warning("oracle gateway returned %s for %s: %s", resp.status, display, text)
                    return OracleJudgment.failure(OracleErrorKind.TRANSPORT_FAILURE, f"HTTP {resp.status}: {text}")
                body = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            LOG.warning("oracle query for %s timed out after %ss", display, self._timeout)
            return OracleJudgment.failure(OracleErrorKind.TIMEOUT, f"no answer within {self._timeout}s")
        except (aiohttp.ClientError, ValueError) as exc:
            LOG.warning("oracle transport failure for %s: %s", display, exc)
            return OracleJudgment.failure(OracleErrorKind.TRANSPORT_FAILURE, str(exc))
        return self._parse(display, body)

    @staticmethod
    def _parse(display: str, body: Any) -> OracleJudgment:
        if not isinstance(body, dict):
            return OracleJudgment.failure(OracleErrorKind.TRANSPORT_FAILURE, "response is not a JSON object")
        if "ok" in body:
            raw = str(body["ok"])
            try:
                payload = bytes.fromhex(raw[2:] if raw.startswith(("0x", "0X")) else raw)
            except ValueError:
                return OracleJudgment.failure(OracleErrorKind.TRANSPORT_FAILURE, "undecodable judgment bytes")
            if not payload:
                return OracleJudgment.failure(OracleErrorKind.TRANSPORT_FAILURE, "empty judgment")
            LOG.info("oracle accepted %s (%d byte judgment)", display, len(payload))
            return OracleJudgment.success(payload)
        reason = str(body.get("error", "")).strip()
        if not reason:
            return OracleJudgment.failure(OracleErrorKind.TRANSPORT_FAILURE, "response has neither ok nor error")
        kind = classify_reason(reason)
        LOG.info("oracle refused %s: %s (%s)", display, reason, kind.value)
        return OracleJudgment.failure(kind, reason)
