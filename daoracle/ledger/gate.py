# SPDX-License-Identifier: MIT
"""
Collect gate: the ledger action that mints only after verification.

The gate holds the per-publication collect records the hub keeps for DA
publications. Verification runs first and is the only step that can fail;
a rejected attestation leaves both the verifier's nonces and the collect
records untouched.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Dict, List, Optional, Tuple, Union

from web3 import Web3

from daoracle.common.ids import CompositePublicationId
from daoracle.ledger.verifier import AttestationVerifier, CollectExpectation

LOG = logging.getLogger("daoracle.gate")


@dataclasses.dataclass
class CollectRecord:
    content_pointer: str
    collect_module: str
    collectors: List[str] = dataclasses.field(default_factory=list)


class CollectGate:
    def __init__(self, verifier: AttestationVerifier, collect_module: str):
        self._verifier = verifier
        self._collect_module = Web3.to_checksum_address(collect_module)
        self._records: Dict[Tuple[int, int], CollectRecord] = {}
        # calls are applied one at a time, like transactions in a block
        self._lock = threading.Lock()

    @property
    def verifier(self) -> AttestationVerifier:
        return self._verifier

    def collect_with_attestation(
        self,
        profile_id: int,
        publication_id: Union[int, CompositePublicationId],
        attestation: Union[bytes, str],
        module_data: bytes = b"",
        collector: str = "",
    ) -> int:
        with self._lock:
            return self._collect(profile_id, int(publication_id), attestation, bytes(module_data), collector)

    def _collect(self, profile_id: int, pub_id: int, attestation: Union[bytes, str], module_data: bytes, collector: str) -> int:
        # every input is checked before verify() consumes the nonce
        if collector and not Web3.is_address(collector):
            raise ValueError(f"Invalid collector address: {collector!r}")
        minter = Web3.to_checksum_address(collector) if collector else None
        key = (profile_id, pub_id)
        record = self._records.get(key)
        expected = CollectExpectation(
            profile_id=profile_id,
            publication_id=pub_id,
            collect_module=self._collect_module,
            content_pointer=record.content_pointer if record else None,
            module_data=module_data,
        )
        verified = self._verifier.verify(attestation, expected)

        if record is None:
            record = CollectRecord(
                content_pointer=verified.judgment.content_pointer,
                collect_module=verified.judgment.collect_module,
            )
            self._records[key] = record
        record.collectors.append(minter or verified.envelope.sender)
        token_id = len(record.collectors)
        LOG.info(
            "collected %s as token %s for %s",
            CompositePublicationId.from_int(pub_id),
            token_id,
            record.collectors[-1],
        )
        return token_id

    def get_content_pointer(self, profile_id: int, publication_id: Union[int, CompositePublicationId]) -> Optional[str]:
        record = self._records.get((profile_id, int(publication_id)))
        return record.content_pointer if record else None

    def collectors_of(self, profile_id: int, publication_id: Union[int, CompositePublicationId]) -> List[str]:
        record = self._records.get((profile_id, int(publication_id)))
        return list(record.collectors) if record else []

    def total_supply(self, profile_id: int, publication_id: Union[int, CompositePublicationId]) -> int:
        return len(self.collectors_of(profile_id, publication_id))
