import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from daoracle.common.errors import AttestationInvalid
from daoracle.common.ids import CompositePublicationId
from daoracle.common.judgment import CollectJudgment
from daoracle.common.metatx import (
    MetaTxDomain,
    MetaTxEnvelope,
    decode_collect_data,
    encode_collect_data,
    signing_digest,
)

from tests.fakes import ATTESTOR_KEY, OTHER_RECEIVER_ADDRESS, RECEIVER_ADDRESS


def _typed_data(domain: MetaTxDomain, sender: str, nonce: int, data: bytes) -> dict:
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "ForwardRequest": [
                {"name": "from", "type": "address"},
                {"name": "nonce", "type": "uint256"},
                {"name": "data", "type": "bytes"},
            ],
        },
        "primaryType": "ForwardRequest",
        "domain": {
            "name": domain.name,
            "version": domain.version,
            "chainId": domain.chain_id,
            "verifyingContract": domain.verifying_contract,
        },
        "message": {"from": sender, "nonce": nonce, "data": data},
    }


def test_domain_defaults():
    domain = MetaTxDomain(verifying_contract=RECEIVER_ADDRESS)
    assert domain.name == "PhatRollupMetaTxReceiver"
    assert domain.version == "0.0.1"
    assert domain.chain_id == 31337
    assert domain.verifying_contract == Web3.to_checksum_address(RECEIVER_ADDRESS)


def test_domain_rejects_bad_contract():
    with pytest.raises(ValueError):
        MetaTxDomain(verifying_contract="0x1234")


def test_digest_matches_eip712_typed_data(attestor, domain):
    data = encode_collect_data(b"\x01\x02\x03", b"")
    envelope = attestor.sign(b"\x01\x02\x03", b"", nonce=5)
    reference = Account.sign_message(
        encode_typed_data(full_message=_typed_data(domain, attestor.address, 5, data)),
        private_key=ATTESTOR_KEY,
    )
    assert bytes(reference.message_hash) == signing_digest(domain, attestor.address, 5, data)
    assert bytes(reference.signature) == envelope.signature


def test_digest_is_bound_to_contract_and_chain(attestor):
    data = encode_collect_data(b"judgment", b"")
    base = MetaTxDomain(verifying_contract=RECEIVER_ADDRESS)
    digests = {
        signing_digest(base, attestor.address, 0, data),
        signing_digest(MetaTxDomain(verifying_contract=OTHER_RECEIVER_ADDRESS), attestor.address, 0, data),
        signing_digest(MetaTxDomain(verifying_contract=RECEIVER_ADDRESS, chain_id=1), attestor.address, 0, data),
        signing_digest(MetaTxDomain(verifying_contract=RECEIVER_ADDRESS, version="0.0.2"), attestor.address, 0, data),
        signing_digest(base, attestor.address, 1, data),
    }
    assert len(digests) == 5


def test_envelope_round_trip(attestor):
    envelope = attestor.sign(b"payload", b"\xaa", nonce=3)
    decoded = MetaTxEnvelope.decode(envelope.encode())
    assert decoded == envelope
    assert MetaTxEnvelope.decode(envelope.to_hex()) == envelope
    assert decode_collect_data(decoded.data) == (b"payload", b"\xaa")
    assert len(decoded.signature) == 65


@pytest.mark.parametrize("garbage", [b"", b"\x00" * 31, b"\xff" * 64, b"\x01" * 200])
def test_undecodable_envelopes_are_invalid(garbage):
    with pytest.raises(AttestationInvalid):
        MetaTxEnvelope.decode(garbage)


def test_recorded_oracle_attestation_decodes(recorded_attestation):
    envelope = MetaTxEnvelope.decode(recorded_attestation)
    assert envelope.sender == Account.from_key(ATTESTOR_KEY).address
    assert envelope.nonce == 0
    assert len(envelope.signature) == 65

    judgment_bytes, module_data = decode_collect_data(envelope.data)
    assert module_data == b""
    judgment = CollectJudgment.decode(judgment_bytes)
    publication_id = (0xEB395E21 << 128) | 0x01EF
    assert judgment.request_profile_id == judgment.profile_id == 1
    assert judgment.request_publication_id == judgment.publication_id == publication_id
    assert judgment.composite_id == CompositePublicationId(0xEB395E21, 0x01EF)
    assert judgment.collect_module == Web3.to_checksum_address("0x23b9467334beb345aaa6fd1545538f3d54436e96")
    assert judgment.content_pointer == "ar://fRMV5dsEElm__vlPfjRpU_QPQL2OZq9g5bY_pDaIZm0"


def test_unknown_judgment_selector_is_invalid():
    judgment = CollectJudgment(1, 2, 1, 2, RECEIVER_ADDRESS, "ar://x", selector=b"\x00\x00\x00\x01")
    with pytest.raises(AttestationInvalid):
        CollectJudgment.decode(judgment.encode())
