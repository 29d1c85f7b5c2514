"""Payload builders and explorer doubles shared by the tests."""

import json
from typing import Optional
from unittest.mock import Mock

from otc_chain_recon.chain.decoders import TRANSFER_EVENT_TOPIC, USDT_ERC20_CONTRACT
from otc_chain_recon.models.chain import Network

TX_HASH = "ab" * 32
SENDER = "0x" + "11" * 20
RECEIVER = "0x" + "22" * 20


def fake_response(status_code: int = 200, payload=None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.content = b"" if payload is None else json.dumps(payload).encode()
    response.text = response.content.decode()
    response.json.return_value = payload
    return response


def word(value: int) -> str:
    return format(value, "064x")


def address_topic(address: str) -> str:
    return "0x" + "0" * 24 + address[2:]


def transfer_log(amount_units: int, contract: str = USDT_ERC20_CONTRACT) -> dict:
    return {
        "address": contract,
        "topics": [TRANSFER_EVENT_TOPIC, address_topic(SENDER), address_topic(RECEIVER)],
        "data": "0x" + word(amount_units),
    }


def erc20_receipt(*logs: dict, status: str = "0x1", block: Optional[str] = "0x10") -> dict:
    return {"status": status, "blockNumber": block, "logs": list(logs)}


def tron_payload(tx_hash: str = TX_HASH, amount_units: int = 50_000_000, symbol: str = "USDT") -> dict:
    return {
        "hash": tx_hash,
        "contractRet": "SUCCESS",
        "ownerAddress": "TOwnerAddressxxxxxxxxxxxxxxxxxxxxx",
        "toAddress": "TContractAddressxxxxxxxxxxxxxxxxxx",
        "trc20TransferInfo": [
            {
                "amount_str": str(amount_units),
                "decimals": 6,
                "symbol": symbol,
                "from_address": "TFromAddressxxxxxxxxxxxxxxxxxxxxxx",
                "to_address": "TToAddressxxxxxxxxxxxxxxxxxxxxxxxx",
            }
        ],
    }


class StubClient:
    """Explorer client double returning a fixed observation or raising."""

    def __init__(self, network: Network, result=None, enabled: bool = True):
        self.network = network
        self.name = network.value
        self.result = result
        self.enabled = enabled
        self.calls = 0
        self.closed = False

    def lookup(self, tx_hash):
        self.calls += 1
        result = self.result.pop(0) if isinstance(self.result, list) else self.result
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


