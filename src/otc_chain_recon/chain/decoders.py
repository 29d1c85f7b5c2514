"""
Transfer decoding strategies for explorer responses.

Each network has an ordered tuple of decoders. A decoder is a plain function
that takes the raw explorer payload and returns a ``DecodedTransfer`` or None;
the first one that returns a transfer wins. Decoders never raise on
malformed payloads.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional
import logging
import re

from ..models.chain import (
    ChainObservation,
    Currency,
    Network,
    TransactionState,
    normalize_currency,
)
from .identifiers import normalize_address

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

# First 4 bytes of keccak256("transfer(address,uint256)")
TRANSFER_SELECTOR = "a9059cbb"

USDT_ERC20_CONTRACT = "0xdac17f958d2ee523a2206206994597c13d831ec7"
USDC_ERC20_CONTRACT = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"

# USDT and USDC both use 6 decimals on Ethereum and Tron
DEFAULT_TOKEN_DECIMALS = 6

_WORD = 64  # hex characters in a 32-byte ABI word
_HEX_DIGITS = re.compile(r"^[0-9a-fA-F]+$")


@dataclass(frozen=True)
class DecodedTransfer:
    """A token transfer recovered from an explorer payload."""

    amount: Decimal
    currency: Optional[Currency]
    sender: Optional[str] = None
    receiver: Optional[str] = None
    method: str = ""


def to_token_units(raw_amount: int, decimals: int = DEFAULT_TOKEN_DECIMALS) -> Decimal:
    """Scale an integer minor-unit amount to token units without float rounding."""
    return Decimal(f"{raw_amount}e{-decimals}")


def _strip_hex(value: Any) -> str:
    text = str(value or "").strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    return text.lower()


def _parse_uint(hex_text: str) -> Optional[int]:
    if not _HEX_DIGITS.match(hex_text or ""):
        return None
    return int(hex_text, 16)


def _clean(value: Any) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _word_address(word: str) -> Optional[str]:
    """Low-order 20 bytes of a 32-byte word, as a 0x address."""
    if len(word) < 40:
        return None
    return "0x" + word[-40:]


def _erc20_currency(contract_address: Any) -> Currency:
    """USDC for the USDC contract, USDT for any other contract (including proxies)."""
    if normalize_address(str(contract_address or "")) == USDC_ERC20_CONTRACT:
        return Currency.USDC
    return Currency.USDT


# ---------------------------------------------------------------------------
# ERC20 (Etherscan)
# ---------------------------------------------------------------------------

ERC20Decoder = Callable[[dict, Optional[dict]], Optional[DecodedTransfer]]


def decode_transfer_from_logs(
    receipt: dict, transaction: Optional[dict] = None
) -> Optional[DecodedTransfer]:
    """
    Decode the first ``Transfer`` event found in a transaction receipt.

    Any emitting contract is accepted. The amount comes from the data word,
    or from the fourth topic when a token indexes the value.
    """
    logs = (receipt or {}).get("logs") or []
    if not isinstance(logs, list):
        return None

    for log in logs:
        if not isinstance(log, dict):
            continue
        topics = log.get("topics") or []
        if not isinstance(topics, list) or len(topics) < 3:
            continue
        if str(topics[0] or "").lower() != TRANSFER_EVENT_TOPIC:
            continue

        raw_amount = None
        data = _strip_hex(log.get("data"))
        if len(data) >= _WORD:
            raw_amount = _parse_uint(data[:_WORD])
        if raw_amount is None and len(topics) >= 4:
            indexed = _strip_hex(topics[3])
            if len(indexed) <= _WORD:
                raw_amount = _parse_uint(indexed)
        if raw_amount is None:
            continue

        return DecodedTransfer(
            amount=to_token_units(raw_amount),
            currency=_erc20_currency(log.get("address")),
            sender=_word_address(_strip_hex(topics[1])),
            receiver=_word_address(_strip_hex(topics[2])),
            method="transfer_event",
        )

    return None


def decode_transfer_from_call_input(
    receipt: dict, transaction: Optional[dict] = None
) -> Optional[DecodedTransfer]:
    """Decode a direct ``transfer(address,uint256)`` call from the transaction input."""
    if not transaction:
        return None

    call_input = str(transaction.get("input") or "")
    if not call_input.lower().startswith("0x"):
        return None
    payload = _strip_hex(call_input)
    if len(payload) < 8 + 2 * _WORD or payload[:8] != TRANSFER_SELECTOR:
        return None

    recipient_word = payload[8 : 8 + _WORD]
    raw_amount = _parse_uint(payload[8 + _WORD : 8 + 2 * _WORD])
    if raw_amount is None:
        return None

    sender = transaction.get("from")
    return DecodedTransfer(
        amount=to_token_units(raw_amount),
        currency=_erc20_currency(transaction.get("to")),
        sender=normalize_address(sender) if sender else None,
        receiver=_word_address(recipient_word),
        method="call_input",
    )


ERC20_DECODERS: tuple[ERC20Decoder, ...] = (
    decode_transfer_from_logs,
    decode_transfer_from_call_input,
)


def decode_erc20_transfer(
    receipt: dict, transaction: Optional[dict] = None
) -> Optional[DecodedTransfer]:
    """Run the ERC20 decoders in order and return the first transfer found."""
    for decoder in ERC20_DECODERS:
        transfer = decoder(receipt, transaction)
        if transfer is not None:
            logger.debug(f"ERC20 transfer decoded via {transfer.method}")
            return transfer
    return None


# ---------------------------------------------------------------------------
# TRC20 (TronScan)
# ---------------------------------------------------------------------------

TronExtractor = Callable[[dict], Optional[DecodedTransfer]]


def _scaled(raw: Any, decimals: Any) -> Optional[Decimal]:
    """Scale a TronScan amount; None for negative or non-integer values."""
    try:
        raw_amount = int(str(raw).strip())
        places = int(decimals) if decimals not in (None, "") else DEFAULT_TOKEN_DECIMALS
    except (TypeError, ValueError, OverflowError):
        return None
    if raw_amount < 0 or places < 0:
        return None
    try:
        return to_token_units(raw_amount, places or DEFAULT_TOKEN_DECIMALS)
    except InvalidOperation:
        return None


def extract_from_token_transfers(data: dict) -> Optional[DecodedTransfer]:
    """Sum the ``trc20TransferInfo`` list (or single ``tokenTransferInfo``)."""
    transfers = data.get("trc20TransferInfo")
    if not transfers and isinstance(data.get("tokenTransferInfo"), dict):
        transfers = [data["tokenTransferInfo"]]
    if not isinstance(transfers, list) or not transfers:
        return None

    total = Decimal("0")
    symbol = ""
    for entry in transfers:
        if not isinstance(entry, dict):
            continue
        amount = _scaled(entry.get("amount_str") or entry.get("amount") or 0, entry.get("decimals"))
        if amount is not None:
            total += amount
        if not symbol:
            symbol = str(entry.get("symbol") or entry.get("name") or "").upper()

    if total == 0:
        return None

    first = transfers[0] if isinstance(transfers[0], dict) else {}
    return DecodedTransfer(
        amount=total,
        currency=normalize_currency(symbol),
        sender=first.get("from_address") or first.get("fromAddress"),
        receiver=first.get("to_address") or first.get("toAddress"),
        method="token_transfers",
    )


def extract_from_trigger_parameter(data: dict) -> Optional[DecodedTransfer]:
    """Read the raw ``_value`` of a smart-contract trigger call."""
    trigger = data.get("trigger_info")
    parameter = trigger.get("parameter") if isinstance(trigger, dict) else None
    if not isinstance(parameter, dict) or parameter.get("_value") in (None, ""):
        return None

    amount = _scaled(parameter.get("_value"), DEFAULT_TOKEN_DECIMALS)
    if amount is None:
        return None
    return DecodedTransfer(amount=amount, currency=Currency.USDT, method="trigger_parameter")


def extract_from_contract_tag(data: dict) -> Optional[DecodedTransfer]:
    """Recover only the token symbol from contract metadata; amount stays zero."""
    contracts = data.get("contractInfo")
    if not isinstance(contracts, dict) or not contracts:
        return None
    first = next(iter(contracts.values()))
    tag = first.get("tag1") if isinstance(first, dict) else None
    if not tag:
        return None
    symbol = str(tag).replace(" Token", "").upper()
    return DecodedTransfer(
        amount=Decimal("0"),
        currency=normalize_currency(symbol),
        method="contract_tag",
    )


TRON_EXTRACTORS: tuple[TronExtractor, ...] = (
    extract_from_token_transfers,
    extract_from_trigger_parameter,
    extract_from_contract_tag,
)


def extract_tron_observation(data: Any, requested_hash: str) -> Optional[ChainObservation]:
    """
    Build an observation from a TronScan ``transaction-info`` response.

    Returns None for empty responses and for responses echoing a different
    hash than the one requested.
    """
    if not isinstance(data, dict) or not data:
        return None

    echoed = _strip_hex(data.get("hash"))
    if echoed and echoed != _strip_hex(requested_hash):
        logger.warning(f"TronScan answered for hash {echoed[:16]}..., discarding")
        return None

    contract_ret = data.get("contractRet")
    if contract_ret == "SUCCESS":
        state = TransactionState.SUCCESSFUL
    else:
        state = contract_ret or TransactionState.UNKNOWN

    transfer = None
    for extractor in TRON_EXTRACTORS:
        transfer = extractor(data)
        if transfer is not None:
            logger.debug(f"TRC20 transfer extracted via {transfer.method}")
            break

    amount = transfer.amount if transfer else Decimal("0")
    currency = (transfer.currency if transfer else None) or Currency.USDT
    sender = (transfer.sender if transfer else None) or data.get("ownerAddress")
    receiver = (transfer.receiver if transfer else None) or data.get("toAddress")

    return ChainObservation(
        state=state,
        network=Network.TRC20,
        amount=amount,
        currency=currency,
        sender=_clean(sender),
        receiver=_clean(receiver),
    )
