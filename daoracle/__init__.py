"""
Attestation bridge between a DA layer and a collect-gated ledger.
"""

from .common.errors import (  # noqa: F401
    AttestationError,
    AttestationInvalid,
    AttestationRejected,
    AttestationReplayed,
    AttestationUnauthorized,
    MalformedIdentifier,
    OracleErrorKind,
)
from .common.ids import CompositePublicationId, from_display_string, pack, to_display_string, unpack  # noqa: F401
from .common.metatx import MetaTxDomain, MetaTxEnvelope, signing_digest  # noqa: F401
from .common.request import AttestationRequest, build_request  # noqa: F401

__version__ = "0.1.0"
