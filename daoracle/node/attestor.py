# SPDX-License-Identifier: MIT
"""
Attestor: turns oracle judgments into signed meta-transaction envelopes.

The attestor owns the oracle's signing key and the nonce counter for that
key. Nonces are only consumed on-chain, at successful verification, so the
local counter is a reservation: an envelope that is never submitted can hand
its nonce back with `release`, and `sync_nonce` realigns the counter with the
receiving contract.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from daoracle.common.errors import AttestationInvalid
from daoracle.common.judgment import CollectJudgment
from daoracle.common.metatx import MetaTxDomain, MetaTxEnvelope, encode_collect_data, signable_request
from daoracle.common.request import AttestationRequest

LOG = logging.getLogger("daoracle.attestor")


class NonceTracker:
    def __init__(self, start: int = 0):
        self._next = start
        self._lock = threading.Lock()

    @property
    def next_nonce(self) -> int:
        with self._lock:
            return self._next

    def reserve(self) -> int:
        with self._lock:
            nonce = self._next
            self._next += 1
            return nonce

    def release(self, nonce: int) -> bool:
        """Give back the most recent reservation; older ones would leave a gap and are kept."""
        with self._lock:
            if nonce == self._next - 1:
                self._next = nonce
                return True
            return False

    def sync(self, on_chain_next: int, force: bool = False) -> None:
        """Catch up with the ledger; pending local reservations are kept unless `force` is set."""
        with self._lock:
            target = on_chain_next if force else max(on_chain_next, self._next)
            if target != self._next:
                LOG.info("nonce counter moved from %s to %s (on-chain %s)", self._next, target, on_chain_next)
            self._next = target


class Attestor:
    def __init__(self, account: LocalAccount, domain: MetaTxDomain, nonces: Optional[NonceTracker] = None):
        self._account = account
        self._domain = domain
        self._nonces = nonces or NonceTracker()

    @classmethod
    def from_key(cls, private_key: str, domain: MetaTxDomain, start_nonce: int = 0) -> "Attestor":
        return cls(Account.from_key(private_key), domain, NonceTracker(start_nonce))

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def domain(self) -> MetaTxDomain:
        return self._domain

    @property
    def nonces(self) -> NonceTracker:
        return self._nonces

    def sync_nonce(self, on_chain_next: int, force: bool = False) -> None:
        self._nonces.sync(on_chain_next, force=force)

    def release(self, envelope: MetaTxEnvelope) -> bool:
        released = self._nonces.release(envelope.nonce)
        if not released:
            LOG.warning("nonce %s could not be released; later envelopes depend on it", envelope.nonce)
        return released

    def sign(self, judgment: bytes, module_data: bytes = b"", nonce: Optional[int] = None) -> MetaTxEnvelope:
        data = encode_collect_data(judgment, module_data)
        if nonce is None:
            nonce = self._nonces.reserve()
        signable = signable_request(self._domain, self._account.address, nonce, data)
        signature = bytes(self._account.sign_message(signable).signature)
        LOG.debug("signed envelope from %s nonce %s for %s", self._account.address, nonce, self._domain.verifying_contract)
        return MetaTxEnvelope(sender=self._account.address, nonce=nonce, data=data, signature=signature)

    def attest(self, request: AttestationRequest, judgment: bytes) -> MetaTxEnvelope:
        """Check the judgment answers this request, then sign it with the request's module data."""
        decoded = CollectJudgment.decode(judgment)
        if decoded != CollectJudgment.for_request(request):
            raise AttestationInvalid(
                f"oracle judgment for {request.display_string} does not match the request: {decoded.to_serialisable()}"
            )
        envelope = self.sign(judgment, request.module_data)
        LOG.info("attested %s with nonce %s", request.display_string, envelope.nonce)
        return envelope
