# SPDX-License-Identifier: MIT
"""
Oracle judgment payloads.

The oracle answers a request with an ABI tuple that echoes the request it
judged next to what it observed on the DA layer:

    (bytes4 selector,
     uint256 requestProfileId, uint256 requestPublicationId,
     uint256 profileId, uint256 publicationId,
     address collectModule, string contentPointer)

The selector versions the layout; `0x00000000` is the collect judgment. The
same tuple is what the ledger decodes out of a verified meta-transaction.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from daoracle.common.errors import AttestationInvalid
from daoracle.common.ids import CompositePublicationId
from daoracle.common.request import AttestationRequest

COLLECT_SELECTOR = bytes(4)
JUDGMENT_TYPES = ["bytes4", "uint256", "uint256", "uint256", "uint256", "address", "string"]


@dataclasses.dataclass(frozen=True)
class CollectJudgment:
    request_profile_id: int
    request_publication_id: int
    profile_id: int
    publication_id: int
    collect_module: str
    content_pointer: str
    selector: bytes = COLLECT_SELECTOR

    @classmethod
    def for_request(cls, request: AttestationRequest) -> "CollectJudgment":
        """Judgment that confirms a request exactly as asked."""
        publication_id = request.publication_id.to_int()
        return cls(
            request_profile_id=request.profile_id,
            request_publication_id=publication_id,
            profile_id=request.profile_id,
            publication_id=publication_id,
            collect_module=request.expected_collect_module,
            content_pointer=request.expected_content_pointer,
        )

    @property
    def composite_id(self) -> CompositePublicationId:
        return CompositePublicationId.from_int(self.publication_id)

    def encode(self) -> bytes:
        return encode(
            JUDGMENT_TYPES,
            [
                self.selector,
                self.request_profile_id,
                self.request_publication_id,
                self.profile_id,
                self.publication_id,
                Web3.to_checksum_address(self.collect_module),
                self.content_pointer,
            ],
        )

    @classmethod
    def decode(cls, payload: bytes) -> "CollectJudgment":
        try:
            selector, req_profile, req_pub, profile, pub, module, pointer = decode(JUDGMENT_TYPES, payload)
        except (DecodingError, ValueError, OverflowError) as err:
            raise AttestationInvalid(f"undecodable judgment payload: {err}") from err
        if selector != COLLECT_SELECTOR:
            raise AttestationInvalid(f"unsupported judgment selector 0x{selector.hex()}")
        return cls(
            request_profile_id=req_profile,
            request_publication_id=req_pub,
            profile_id=profile,
            publication_id=pub,
            collect_module=Web3.to_checksum_address(module),
            content_pointer=pointer,
            selector=selector,
        )

    def to_serialisable(self) -> Dict[str, Any]:
        return {
            "selector": "0x" + self.selector.hex(),
            "request_profile_id": self.request_profile_id,
            "request_publication_id": str(self.request_publication_id),
            "profile_id": self.profile_id,
            "publication_id": str(self.publication_id),
            "collect_module": self.collect_module,
            "content_pointer": self.content_pointer,
        }
