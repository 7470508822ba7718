# SPDX-License-Identifier: MIT
"""
Meta-transaction envelopes carrying oracle judgments on-chain.

An envelope is `(from, nonce, data)` plus an EIP-712 signature over

    ForwardRequest(address from,uint256 nonce,bytes data)

in the domain `{name, version, chainId, verifyingContract}` of the receiving
contract. The ledger gets it as `abi.encode((address,uint256,bytes), bytes)`.
`data` wraps the judgment and the collect module data as
`abi.encode(bytes, bytes)`.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_account import Account
from eth_account.messages import SignableMessage
from web3 import Web3

from daoracle.common.errors import AttestationInvalid

DEFAULT_DOMAIN_NAME = "PhatRollupMetaTxReceiver"
DEFAULT_DOMAIN_VERSION = "0.0.1"
DEFAULT_CHAIN_ID = 31337

EIP712_DOMAIN_TYPEHASH = bytes(
    Web3.keccak(text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)")
)
FORWARD_REQUEST_TYPEHASH = bytes(Web3.keccak(text="ForwardRequest(address from,uint256 nonce,bytes data)"))

ENVELOPE_TYPES = ["(address,uint256,bytes)", "bytes"]
COLLECT_DATA_TYPES = ["bytes", "bytes"]
SIGNATURE_LENGTH = 65


@dataclasses.dataclass(frozen=True)
class MetaTxDomain:
    verifying_contract: str
    chain_id: int = DEFAULT_CHAIN_ID
    name: str = DEFAULT_DOMAIN_NAME
    version: str = DEFAULT_DOMAIN_VERSION

    def __post_init__(self):
        if not Web3.is_address(self.verifying_contract):
            raise ValueError(f"Invalid verifying contract address: {self.verifying_contract!r}")
        object.__setattr__(self, "verifying_contract", Web3.to_checksum_address(self.verifying_contract))

    def separator(self) -> bytes:
        return domain_separator(self.name, self.version, self.chain_id, self.verifying_contract)


def domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "bytes32", "bytes32", "uint256", "address"],
                [
                    EIP712_DOMAIN_TYPEHASH,
                    bytes(Web3.keccak(text=name)),
                    bytes(Web3.keccak(text=version)),
                    chain_id,
                    Web3.to_checksum_address(verifying_contract),
                ],
            )
        )
    )


def forward_request_hash(sender: str, nonce: int, data: bytes) -> bytes:
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "address", "uint256", "bytes32"],
                [FORWARD_REQUEST_TYPEHASH, Web3.to_checksum_address(sender), nonce, bytes(Web3.keccak(data))],
            )
        )
    )


def signable_request(domain: MetaTxDomain, sender: str, nonce: int, data: bytes) -> SignableMessage:
    return SignableMessage(
        version=b"\x01",
        header=domain.separator(),
        body=forward_request_hash(sender, nonce, data),
    )


def signing_digest(domain: MetaTxDomain, sender: str, nonce: int, data: bytes) -> bytes:
    """EIP-712 digest of `(sender, nonce, data)`; every binding parameter is explicit."""
    signable = signable_request(domain, sender, nonce, data)
    return bytes(Web3.keccak(b"\x19" + signable.version + signable.header + signable.body))


def recover_signer(domain: MetaTxDomain, sender: str, nonce: int, data: bytes, signature: bytes) -> str:
    if len(signature) != SIGNATURE_LENGTH:
        raise AttestationInvalid(f"signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
    try:
        recovered = Account.recover_message(signable_request(domain, sender, nonce, data), signature=signature)
    except Exception as exc:  # pylint: disable=broad-except
        raise AttestationInvalid(f"unrecoverable signature: {exc}") from exc
    return Web3.to_checksum_address(recovered)


def encode_collect_data(judgment: bytes, module_data: bytes = b"") -> bytes:
    return encode(COLLECT_DATA_TYPES, [bytes(judgment), bytes(module_data)])


def decode_collect_data(data: bytes) -> Tuple[bytes, bytes]:
    try:
        judgment, module_data = decode(COLLECT_DATA_TYPES, data)
    except (DecodingError, ValueError, OverflowError) as err:
        raise AttestationInvalid(f"undecodable meta-transaction data: {err}") from err
    return judgment, module_data


@dataclasses.dataclass(frozen=True)
class MetaTxEnvelope:
    sender: str
    nonce: int
    data: bytes
    signature: bytes

    def encode(self) -> bytes:
        return encode(
            ENVELOPE_TYPES,
            [(Web3.to_checksum_address(self.sender), self.nonce, self.data), self.signature],
        )

    def to_hex(self) -> str:
        return "0x" + self.encode().hex()

    @classmethod
    def decode(cls, attestation: bytes) -> "MetaTxEnvelope":
        try:
            if isinstance(attestation, str):
                attestation = bytes.fromhex(attestation[2:] if attestation.startswith(("0x", "0X")) else attestation)
            (sender, nonce, data), signature = decode(ENVELOPE_TYPES, attestation)
        except (DecodingError, ValueError, OverflowError, TypeError) as err:
            raise AttestationInvalid(f"undecodable attestation envelope: {err}") from err
        return cls(sender=Web3.to_checksum_address(sender), nonce=nonce, data=data, signature=signature)

    def digest(self, domain: MetaTxDomain) -> bytes:
        return signing_digest(domain, self.sender, self.nonce, self.data)

    def to_serialisable(self) -> Dict[str, Any]:
        return {
            "from": self.sender,
            "nonce": self.nonce,
            "data": "0x" + self.data.hex(),
            "signature": "0x" + self.signature.hex(),
        }
