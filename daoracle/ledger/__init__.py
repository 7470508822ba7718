"""
Ledger-side models of the oracle receiver and the collect gate, plus the
web3 client for the deployed hub.
"""

from .gate import CollectGate  # noqa: F401
from .verifier import AttestationVerifier, CollectExpectation, VerifiedAttestation  # noqa: F401
