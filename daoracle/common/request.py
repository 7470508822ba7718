# SPDX-License-Identifier: MIT
"""
Attestation requests sent to the oracle network.

A request pins down everything the oracle is asked to confirm about a DA
publication: who published it, which publication it is, which collect module
it was posted with and where its content lives. Building one is pure; every
check that can fail does so here, before any network traffic.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Union

from web3 import Web3

from daoracle.common.errors import MalformedIdentifier
from daoracle.common.ids import (
    FIELD_MASK,
    CompositePublicationId,
    from_display_string,
    to_display_string,
)

PublicationRef = Union[CompositePublicationId, int, str]


def _coerce_bytes(value: Union[bytes, bytearray, str, None]) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        data = value[2:] if value.startswith(("0x", "0X")) else value
        return bytes.fromhex(data)
    raise TypeError(f"expected bytes or hex string, got {type(value).__name__}")


def _checksum(address: str) -> str:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid collect module address: {address!r}")
    return Web3.to_checksum_address(address)


def _resolve_publication(profile_id: int, publication: PublicationRef) -> CompositePublicationId:
    if isinstance(publication, CompositePublicationId):
        return publication
    if isinstance(publication, str):
        parsed_profile, publication_id = from_display_string(publication)
        if parsed_profile != profile_id:
            raise MalformedIdentifier(
                f"publication {publication!r} belongs to profile {parsed_profile:#x}, not {profile_id:#x}"
            )
        return publication_id
    if isinstance(publication, int) and not isinstance(publication, bool):
        return CompositePublicationId.from_int(publication)
    raise TypeError(f"unsupported publication reference: {publication!r}")


@dataclasses.dataclass(frozen=True)
class AttestationRequest:
    profile_id: int
    publication_id: CompositePublicationId
    expected_collect_module: str
    expected_content_pointer: str
    module_data: bytes = b""

    @property
    def display_string(self) -> str:
        return to_display_string(self.profile_id, self.publication_id)

    def to_query(self, strict_availability: bool = True, strict_finality: bool = True) -> Dict[str, Any]:
        return {
            "publication": self.display_string,
            "strictAvailability": bool(strict_availability),
            "strictFinality": bool(strict_finality),
        }

    def to_serialisable(self) -> Dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "publication_id": str(self.publication_id.to_int()),
            "display": self.display_string,
            "collect_module": self.expected_collect_module,
            "content_pointer": self.expected_content_pointer,
            "module_data": "0x" + self.module_data.hex(),
        }


def build_request(
    profile_id: int,
    publication: PublicationRef,
    collect_module: str,
    content_pointer: str,
    module_data: Union[bytes, str, None] = b"",
) -> AttestationRequest:
    if isinstance(profile_id, bool) or not isinstance(profile_id, int) or not 0 < profile_id <= FIELD_MASK:
        raise ValueError(f"profile id out of range: {profile_id!r}")
    if not isinstance(content_pointer, str) or not content_pointer.strip():
        raise ValueError("Empty content pointer supplied")
    return AttestationRequest(
        profile_id=profile_id,
        publication_id=_resolve_publication(profile_id, publication),
        expected_collect_module=_checksum(collect_module),
        expected_content_pointer=content_pointer.strip(),
        module_data=_coerce_bytes(module_data),
    )
