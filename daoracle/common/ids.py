# SPDX-License-Identifier: MIT
"""
Composite publication identifiers.

A DA publication is addressed by the batch it was submitted in and a
reference index relative to that batch. The ledger sees both halves packed
into one uint256: the batch id in the high 128 bits and the reference id in
the low 128 bits. Humans (and the oracle network) see the display form
`0x{profileId}-0x{referenceId}-DA-{batchId}`.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Tuple

from daoracle.common.errors import MalformedIdentifier

FIELD_BITS = 128
FIELD_MASK = (1 << FIELD_BITS) - 1
UINT256_MAX = (1 << 256) - 1

_DISPLAY_RE = re.compile(r"0x([0-9a-fA-F]+)-0x([0-9a-fA-F]+)-DA-([0-9a-fA-F]+)")


def _check_field(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= FIELD_MASK:
        raise ValueError(f"{name} out of range for a 128-bit field: {value:#x}")
    return value


def pack(batch_id: int, reference_id: int) -> int:
    return (_check_field("batch_id", batch_id) << FIELD_BITS) | _check_field("reference_id", reference_id)


def unpack(value: int) -> Tuple[int, int]:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT256_MAX:
        raise ValueError(f"not a uint256: {value!r}")
    return value >> FIELD_BITS, value & FIELD_MASK


def _even_hex(value: int) -> str:
    digits = format(value, "x")
    if len(digits) % 2:
        digits = "0" + digits
    return digits


@dataclasses.dataclass(frozen=True, order=True)
class CompositePublicationId:
    batch_id: int
    reference_id: int

    def __post_init__(self):
        _check_field("batch_id", self.batch_id)
        _check_field("reference_id", self.reference_id)

    @classmethod
    def from_int(cls, value: int) -> "CompositePublicationId":
        return cls(*unpack(value))

    def to_int(self) -> int:
        return pack(self.batch_id, self.reference_id)

    @property
    def is_da(self) -> bool:
        """Sequential on-chain publication ids never carry a batch id."""
        return self.batch_id != 0

    def __int__(self) -> int:
        return self.to_int()

    def __str__(self) -> str:
        return f"0x{_even_hex(self.reference_id)}-DA-{self.batch_id:x}"


def to_display_string(profile_id: int, publication_id: CompositePublicationId) -> str:
    _check_field("profile_id", profile_id)
    return f"0x{_even_hex(profile_id)}-0x{_even_hex(publication_id.reference_id)}-DA-{publication_id.batch_id:x}"


def from_display_string(value: str) -> Tuple[int, CompositePublicationId]:
    """Parse `0x{profile}-0x{reference}-DA-{batch}` into `(profile_id, publication_id)`."""
    if not isinstance(value, str):
        raise MalformedIdentifier(f"expected a string, got {type(value).__name__}")
    match = _DISPLAY_RE.fullmatch(value)
    if not match:
        raise MalformedIdentifier(f"not a DA publication identifier: {value!r}")
    profile_id, reference_id, batch_id = (int(group, 16) for group in match.groups())
    for name, number in (("profile", profile_id), ("reference", reference_id), ("batch", batch_id)):
        if number > FIELD_MASK:
            raise MalformedIdentifier(f"{name} segment exceeds 128 bits in {value!r}")
    return profile_id, CompositePublicationId(batch_id=batch_id, reference_id=reference_id)
