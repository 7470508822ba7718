# SPDX-License-Identifier: MIT
"""
On-chain submission of attestations to a deployed hub.

`HubClient` has the same `collect_with_attestation` surface as the
in-process `CollectGate`, so the collect pipeline can run against either.
Each collect is simulated with `eth_call` first, which surfaces the revert
reason and the token id the hub would mint, and only then sent.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError

from daoracle.common.errors import AttestationRejected
from daoracle.common.ids import CompositePublicationId

LOG = logging.getLogger("daoracle.chain")

HUB_ABI: List[dict] = [
    {
        "type": "function",
        "name": "daCollect",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "profileId", "type": "uint256"},
            {"name": "pubId", "type": "uint256"},
            {"name": "attestation", "type": "bytes"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getContentURI",
        "stateMutability": "view",
        "inputs": [
            {"name": "profileId", "type": "uint256"},
            {"name": "pubId", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "string"}],
    },
]

RECEIVER_ABI: List[dict] = [
    {
        "type": "function",
        "name": "metaTxGetNonce",
        "stateMutability": "view",
        "inputs": [{"name": "from", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


def load_abi(artifact_path: Union[str, Path]) -> List[dict]:
    """Read the ABI out of a compiled contract artifact (forge or hardhat layout)."""
    with open(artifact_path, "r", encoding="utf-8") as fh:
        artifact = json.load(fh)
    return artifact["abi"] if isinstance(artifact, dict) else artifact


def _as_bytes(value: Union[bytes, str]) -> bytes:
    if isinstance(value, str):
        return bytes.fromhex(value[2:] if value.startswith(("0x", "0X")) else value)
    return bytes(value)


class HubClient:
    def __init__(
        self,
        w3: Web3,
        hub_address: str,
        account: LocalAccount,
        receiver_address: Optional[str] = None,
        hub_abi: Optional[List[dict]] = None,
        gas: int = 500_000,
    ):
        self._w3 = w3
        self._account = account
        self._gas = gas
        self._hub: Contract = w3.eth.contract(
            address=Web3.to_checksum_address(hub_address),
            abi=hub_abi or HUB_ABI,
        )
        self._receiver: Optional[Contract] = None
        if receiver_address:
            self._receiver = w3.eth.contract(
                address=Web3.to_checksum_address(receiver_address),
                abi=RECEIVER_ABI,
            )
        self._nonce_lock = threading.Lock()

    @classmethod
    def connect(cls, rpc_url: str, hub_address: str, private_key: str, **kwargs) -> "HubClient":
        w3 = Web3(Web3.HTTPProvider(rpc_url))
        if not w3.is_connected():
            raise ConnectionError(f"Unable to connect to RPC at {rpc_url}")
        return cls(w3, hub_address, w3.eth.account.from_key(private_key), **kwargs)

    def signer_nonce(self, signer: str) -> int:
        if self._receiver is None:
            raise RuntimeError("No oracle receiver address configured")
        return int(self._receiver.functions.metaTxGetNonce(Web3.to_checksum_address(signer)).call())

    def content_pointer(self, profile_id: int, publication_id: Union[int, CompositePublicationId]) -> str:
        return self._hub.functions.getContentURI(profile_id, int(publication_id)).call()

    def collect_with_attestation(
        self,
        profile_id: int,
        publication_id: Union[int, CompositePublicationId],
        attestation: Union[bytes, str],
        module_data: Union[bytes, str] = b"",
        collector: str = "",
    ) -> int:
        # the hub mints to msg.sender, so `collector` is always the submitting account
        fn = self._hub.functions.daCollect(
            profile_id,
            int(publication_id),
            _as_bytes(attestation),
            _as_bytes(module_data),
        )
        try:
            token_id = int(fn.call({"from": self._account.address}))
        except ContractLogicError as err:
            LOG.warning("daCollect dry run reverted: %s", err)
            raise AttestationRejected(f"collect rejected by hub: {err}", reason=str(err)) from err
        tx_hash, receipt = self._send_contract_tx(fn)
        if receipt.status != 1:
            LOG.error("daCollect tx %s failed with status %s", tx_hash.hex(), receipt.status)
            raise AttestationRejected(f"collect transaction {tx_hash.hex()} reverted")
        LOG.info("collected via tx %s, token %s", tx_hash.hex(), token_id)
        return token_id

    def _send_contract_tx(self, fn) -> Tuple[bytes, Any]:
        with self._nonce_lock:
            tx = fn.build_transaction(
                {
                    "from": self._account.address,
                    "nonce": self._w3.eth.get_transaction_count(self._account.address),
                    "gas": self._gas,
                    "gasPrice": self._w3.eth.gas_price,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash)
        return tx_hash, receipt
