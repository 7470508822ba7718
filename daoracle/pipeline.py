# SPDX-License-Identifier: MIT
"""
End-to-end collect flow for DA publications.

    build request -> query oracle -> sign envelope -> submit to ledger

Each attempt reports the stage it stopped at so callers can tell a typo in
the identifier (fix and retry), an unavailable publication (wait and retry)
and a rejected attestation (rebuild from scratch) apart. The oracle query is
the only step that waits on an outside service; it is bounded by a timeout
and retried with a freshly built request. Nonces are reserved when an
envelope is signed and handed back whenever the ledger does not consume them.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import Callable, Optional, Protocol, Union

from daoracle.common.errors import AttestationError, AttestationInvalid, MalformedIdentifier, OracleErrorKind
from daoracle.common.metatx import MetaTxEnvelope
from daoracle.common.request import AttestationRequest, PublicationRef, build_request
from daoracle.node.attestor import Attestor
from daoracle.node.client import OracleClient, OracleJudgment

LOG = logging.getLogger("daoracle.pipeline")


class Stage(str, enum.Enum):
    IDENTIFIER = "identifier"
    ORACLE = "oracle"
    VERIFICATION = "verification"
    COMPLETE = "complete"


@dataclasses.dataclass(frozen=True)
class CollectOutcome:
    stage: Stage
    token_id: Optional[int] = None
    error_kind: Optional[str] = None
    detail: str = ""
    envelope: Optional[MetaTxEnvelope] = None

    @property
    def ok(self) -> bool:
        return self.stage is Stage.COMPLETE

    @property
    def retryable(self) -> bool:
        """True when trying again later (with a fresh request) may succeed."""
        if self.stage is not Stage.ORACLE or self.error_kind is None:
            return False
        try:
            return OracleErrorKind(self.error_kind).retryable
        except ValueError:
            return False


class Ledger(Protocol):
    def collect_with_attestation(
        self,
        profile_id: int,
        publication_id: int,
        attestation: Union[bytes, str],
        module_data: bytes = b"",
        collector: str = "",
    ) -> int:
        ...


class CollectPipeline:
    def __init__(
        self,
        oracle: OracleClient,
        attestor: Attestor,
        ledger: Ledger,
        timeout: float = 30.0,
        retries: int = 0,
        backoff: float = 1.0,
        nonce_source: Optional[Callable[[str], int]] = None,
    ):
        self._oracle = oracle
        self._attestor = attestor
        self._ledger = ledger
        self._timeout = timeout
        self._retries = max(0, retries)
        self._backoff = backoff
        self._nonce_source = nonce_source
        # one signer, one nonce sequence: envelopes reach the ledger in nonce order
        self._submit_lock = asyncio.Lock()

    async def collect(
        self,
        profile_id: int,
        publication: PublicationRef,
        collect_module: str,
        content_pointer: str,
        module_data: Union[bytes, str] = b"",
        collector: str = "",
    ) -> CollectOutcome:
        def build() -> AttestationRequest:
            return build_request(profile_id, publication, collect_module, content_pointer, module_data)

        try:
            request = build()
        except (MalformedIdentifier, ValueError, TypeError) as err:
            LOG.warning("rejected collect input %r: %s", publication, err)
            return CollectOutcome(Stage.IDENTIFIER, error_kind=type(err).__name__, detail=str(err))

        judgment = await self.judge(request, rebuild=build)
        if not judgment.ok:
            return CollectOutcome(Stage.ORACLE, error_kind=judgment.error.value, detail=judgment.detail)

        async with self._submit_lock:
            return await self._submit(request, judgment, collector)

    async def _submit(self, request: AttestationRequest, judgment: OracleJudgment, collector: str) -> CollectOutcome:
        if self._nonce_source is not None:
            self._attestor.sync_nonce(await asyncio.to_thread(self._nonce_source, self._attestor.address))
        try:
            envelope = self._attestor.attest(request, judgment.payload)
        except AttestationInvalid as err:
            LOG.warning("oracle judgment for %s unusable: %s", request.display_string, err)
            return CollectOutcome(Stage.ORACLE, error_kind=OracleErrorKind.INVALID_PUBLICATION.value, detail=str(err))

        try:
            token_id = await asyncio.to_thread(
                self._ledger.collect_with_attestation,
                request.profile_id,
                request.publication_id.to_int(),
                envelope.encode(),
                request.module_data,
                collector,
            )
        except AttestationError as err:
            self._attestor.release(envelope)
            LOG.warning("ledger rejected attestation for %s: %s", request.display_string, err)
            return CollectOutcome(Stage.VERIFICATION, error_kind=type(err).__name__, detail=str(err), envelope=envelope)
        except Exception:
            self._attestor.release(envelope)
            raise

        LOG.info("collected %s as token %s", request.display_string, token_id)
        return CollectOutcome(Stage.COMPLETE, token_id=token_id, envelope=envelope)

    async def judge(
        self,
        request: AttestationRequest,
        rebuild: Optional[Callable[[], AttestationRequest]] = None,
    ) -> OracleJudgment:
        """Query the oracle with a timeout, retrying retryable failures with a fresh request."""
        attempts = self._retries + 1
        for attempt in range(1, attempts + 1):
            if attempt > 1 and rebuild is not None:
                request = rebuild()
            try:
                judgment = await asyncio.wait_for(self._oracle.query(request), timeout=self._timeout)
            except asyncio.TimeoutError:
                judgment = OracleJudgment.failure(OracleErrorKind.TIMEOUT, f"no answer within {self._timeout}s")
            if judgment.ok or not judgment.error.retryable or attempt == attempts:
                return judgment
            delay = self._backoff * attempt
            LOG.info(
                "oracle attempt %d/%d for %s failed (%s); retrying in %.1fs",
                attempt,
                attempts,
                request.display_string,
                judgment.error.value,
                delay,
            )
            await asyncio.sleep(delay)
        return judgment
