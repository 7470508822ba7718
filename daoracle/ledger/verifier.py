# SPDX-License-Identifier: MIT
"""
Ledger-side attestation verifier.

Models the oracle receiver contract the hub calls from `daCollect`: it
recovers the envelope signer, checks the signer is an authorised oracle
identity and the nonce is the next one expected for that signer, then
checks the judgment against the collect call in flight. State (the nonce
table) only changes once every check has passed.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterable, Optional, Union

from web3 import Web3

from daoracle.common.errors import (
    AttestationInvalid,
    AttestationReplayed,
    AttestationUnauthorized,
)
from daoracle.common.ids import CompositePublicationId
from daoracle.common.judgment import CollectJudgment
from daoracle.common.metatx import MetaTxDomain, MetaTxEnvelope, decode_collect_data, recover_signer

LOG = logging.getLogger("daoracle.verifier")


@dataclasses.dataclass(frozen=True)
class CollectExpectation:
    """What the collect call in flight expects the oracle to have confirmed."""

    profile_id: int
    publication_id: int
    collect_module: str
    content_pointer: Optional[str] = None
    module_data: Optional[bytes] = None

    def __post_init__(self):
        if isinstance(self.publication_id, CompositePublicationId):
            object.__setattr__(self, "publication_id", self.publication_id.to_int())
        object.__setattr__(self, "collect_module", Web3.to_checksum_address(self.collect_module))


@dataclasses.dataclass(frozen=True)
class VerifiedAttestation:
    envelope: MetaTxEnvelope
    judgment: CollectJudgment
    module_data: bytes


class AttestationVerifier:
    def __init__(self, domain: MetaTxDomain, authorized_signers: Iterable[str] = ()):
        self._domain = domain
        self._authorized = {Web3.to_checksum_address(addr) for addr in authorized_signers}
        self._nonces: Dict[str, int] = {}

    @property
    def domain(self) -> MetaTxDomain:
        return self._domain

    def authorize(self, signer: str) -> None:
        self._authorized.add(Web3.to_checksum_address(signer))

    def revoke(self, signer: str) -> None:
        self._authorized.discard(Web3.to_checksum_address(signer))

    def is_authorized(self, signer: str) -> bool:
        return Web3.to_checksum_address(signer) in self._authorized

    def next_nonce(self, signer: str) -> int:
        return self._nonces.get(Web3.to_checksum_address(signer), 0)

    def check(self, attestation: Union[bytes, str], expected: CollectExpectation) -> VerifiedAttestation:
        """Run every verification step without consuming the nonce."""
        envelope = MetaTxEnvelope.decode(attestation)

        recovered = recover_signer(self._domain, envelope.sender, envelope.nonce, envelope.data, envelope.signature)
        if recovered != envelope.sender:
            raise AttestationInvalid(f"signature recovers {recovered}, envelope claims {envelope.sender}")
        if envelope.sender not in self._authorized:
            raise AttestationUnauthorized(f"{envelope.sender} is not an authorised oracle signer")

        expected_nonce = self.next_nonce(envelope.sender)
        if envelope.nonce < expected_nonce:
            raise AttestationReplayed(f"nonce {envelope.nonce} already consumed for {envelope.sender}")
        if envelope.nonce > expected_nonce:
            raise AttestationInvalid(f"nonce {envelope.nonce} skips ahead of {expected_nonce} for {envelope.sender}")

        payload, module_data = decode_collect_data(envelope.data)
        judgment = CollectJudgment.decode(payload)
        self._match(judgment, module_data, expected)
        return VerifiedAttestation(envelope=envelope, judgment=judgment, module_data=module_data)

    def verify(self, attestation: Union[bytes, str], expected: CollectExpectation) -> VerifiedAttestation:
        verified = self.check(attestation, expected)
        sender = verified.envelope.sender
        self._nonces[sender] = verified.envelope.nonce + 1
        LOG.info("consumed nonce %s for %s", verified.envelope.nonce, sender)
        return verified

    @staticmethod
    def _match(judgment: CollectJudgment, module_data: bytes, expected: CollectExpectation) -> None:
        mismatches = []
        if judgment.request_profile_id != expected.profile_id or judgment.profile_id != expected.profile_id:
            mismatches.append("profile id")
        if (
            judgment.request_publication_id != expected.publication_id
            or judgment.publication_id != expected.publication_id
        ):
            mismatches.append("publication id")
        if judgment.collect_module != expected.collect_module:
            mismatches.append("collect module")
        if expected.content_pointer is not None and judgment.content_pointer != expected.content_pointer:
            mismatches.append("content pointer")
        if expected.module_data is not None and module_data != expected.module_data:
            mismatches.append("module data")
        if mismatches:
            raise AttestationInvalid("attestation does not match collect call: " + ", ".join(mismatches))
