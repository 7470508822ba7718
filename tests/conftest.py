import pytest

from daoracle.common.metatx import MetaTxDomain
from daoracle.ledger.gate import CollectGate
from daoracle.ledger.verifier import AttestationVerifier
from daoracle.node.attestor import Attestor

from tests.fakes import ATTESTOR_KEY, COLLECT_MODULE, DATA_DIR, OUTSIDER_KEY, RECEIVER_ADDRESS


@pytest.fixture
def domain():
    return MetaTxDomain(verifying_contract=RECEIVER_ADDRESS)


@pytest.fixture
def attestor(domain):
    return Attestor.from_key(ATTESTOR_KEY, domain)


@pytest.fixture
def outsider(domain):
    return Attestor.from_key(OUTSIDER_KEY, domain)


@pytest.fixture
def verifier(domain, attestor):
    return AttestationVerifier(domain, authorized_signers=[attestor.address])


@pytest.fixture
def gate(verifier):
    return CollectGate(verifier, COLLECT_MODULE)


@pytest.fixture
def recorded_attestation():
    return (DATA_DIR / "recorded_attestation.hex").read_text(encoding="utf-8").strip()
