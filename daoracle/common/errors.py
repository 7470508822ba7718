# SPDX-License-Identifier: MIT
"""
Error taxonomy shared by the codec, the oracle client and the ledger model.

Identifier errors are local and raised before any I/O happens. Oracle errors
are never raised: the client classifies them into an `OracleErrorKind` and
returns them inside an `OracleJudgment`. Attestation errors are the terminal
outcome of a verification attempt and leave no state behind.
"""

from __future__ import annotations

import enum


class MalformedIdentifier(ValueError):
    """Raised when a publication display string does not parse."""


class OracleErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    NOT_YET_AVAILABLE = "not_yet_available"
    INVALID_PUBLICATION = "invalid_publication"
    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT = "timeout"

    @property
    def retryable(self) -> bool:
        return self is not OracleErrorKind.INVALID_PUBLICATION


class AttestationError(Exception):
    """Base class for attestations refused by a verifier."""


class AttestationInvalid(AttestationError):
    """Raised when an envelope is malformed, mis-signed or does not match the collect call."""


class AttestationUnauthorized(AttestationError):
    """Raised when the envelope signer is not an authorised oracle identity."""


class AttestationReplayed(AttestationError):
    """Raised when the envelope nonce was already consumed for its signer."""


class AttestationRejected(AttestationError):
    """Raised when the ledger reverts a collect transaction."""

    def __init__(self, message: str, reason: str = ""):
        self.reason = reason
        super().__init__(message)
