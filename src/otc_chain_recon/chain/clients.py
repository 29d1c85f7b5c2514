"""
Rate-limited clients for the TronScan and Etherscan public APIs.

Both explorers throttle per IP and clear the throttle after a short wait, so
a lookup answered with HTTP 429 sleeps a fixed cooldown and is retried a
bounded number of times before giving up with ``RateLimitExceededError``.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
import logging
import time

import requests

from ..config import EtherscanConfig, ExplorerConfig, TronScanConfig
from ..models.chain import ChainObservation, Network, TransactionState
from ..utils.exceptions import ExplorerError, RateLimitExceededError
from .decoders import decode_erc20_transfer, extract_tron_observation
from .identifiers import CanonicalHash

logger = logging.getLogger(__name__)


class _Throttled(Exception):
    """Raised inside a lookup when the explorer answers with a rate limit."""


class ExplorerClient(ABC):
    """Base class for one network's explorer API."""

    network: Network
    name: str = "explorer"

    def __init__(
        self,
        config: ExplorerConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the client.

        Args:
            config: Explorer connection settings
            session: HTTP session to reuse (a new one is created if omitted)
            sleep: Function used to wait out rate limits
        """
        self.config = config
        self.session = session or requests.Session()
        self._sleep = sleep

    @property
    def enabled(self) -> bool:
        return True

    def close(self) -> None:
        """Release the HTTP session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def lookup(self, tx_hash: CanonicalHash) -> Optional[ChainObservation]:
        """
        Query the explorer for one transaction.

        Returns None when the transaction is not found or carries no
        decodable transfer.

        Raises:
            RateLimitExceededError: Still throttled after all retries
            ExplorerError: Transport failure or unexpected HTTP status
        """
        attempt = 0
        while True:
            try:
                return self._lookup(tx_hash)
            except _Throttled as exc:
                if attempt >= self.config.max_rate_limit_retries:
                    raise RateLimitExceededError(
                        f"{self.name} rate limit still active after {attempt} retries",
                        status_code=429,
                    ) from exc
                attempt += 1
                logger.warning(
                    f"{self.name} rate limited, waiting "
                    f"{self.config.rate_limit_cooldown_seconds}s before retry {attempt}"
                )
                self._sleep(self.config.rate_limit_cooldown_seconds)

    @abstractmethod
    def _lookup(self, tx_hash: CanonicalHash) -> Optional[ChainObservation]:
        """Perform one lookup attempt."""
        pass

    def _get(self, params: dict[str, Any]) -> Optional[Any]:
        """
        Issue one GET against the explorer.

        Returns the decoded JSON body, or None for 404 and empty or
        unparseable bodies.
        """
        try:
            response = self.session.get(
                self.config.base_url,
                params=params,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ExplorerError(f"{self.name} request failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code == 429:
            raise _Throttled()
        if not response.ok:
            raise ExplorerError(
                f"{self.name} HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        if not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            logger.warning(f"{self.name} returned a body that is not JSON")
            return None


class TronScanClient(ExplorerClient):
    """TRC20 lookups through TronScan ``transaction-info``."""

    network = Network.TRC20
    name = "TronScan"

    def __init__(
        self,
        config: Optional[TronScanConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(config or TronScanConfig(), session=session, sleep=sleep)

    def _lookup(self, tx_hash: CanonicalHash) -> Optional[ChainObservation]:
        tron_hash = tx_hash.tron_hash
        if tron_hash is None:
            logger.debug(f"Not a Tron hash: {tx_hash.original!r}")
            return None

        data = self._get({"hash": tron_hash})
        return extract_tron_observation(data, tron_hash)


class EtherscanClient(ExplorerClient):
    """ERC20 lookups through the Etherscan v2 proxy module."""

    network = Network.ERC20
    name = "Etherscan"

    def __init__(
        self,
        config: Optional[EtherscanConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(config or EtherscanConfig(), session=session, sleep=sleep)

    @property
    def enabled(self) -> bool:
        """ERC20 lookups need an API key."""
        return bool(self.config.api_key)

    def _lookup(self, tx_hash: CanonicalHash) -> Optional[ChainObservation]:
        if not self.enabled:
            return None

        receipt = self._proxy("eth_getTransactionReceipt", tx_hash.ethereum_hash)
        if receipt is None:
            return None

        status = receipt.get("status")
        if not status or status == "0x0":
            logger.info(f"Etherscan receipt reports a failed transaction (status={status})")
            return None
        state = TransactionState.SUCCESSFUL if receipt.get("blockNumber") else TransactionState.PENDING

        transfer = decode_erc20_transfer(receipt)
        if transfer is None:
            logger.debug("No Transfer event in receipt logs, decoding call input")
            transaction = self._proxy("eth_getTransactionByHash", tx_hash.ethereum_hash)
            if transaction is None:
                return None
            transfer = decode_erc20_transfer(receipt, transaction)
        if transfer is None:
            return None

        return ChainObservation(
            state=state,
            network=Network.ERC20,
            amount=transfer.amount,
            currency=transfer.currency,
            sender=transfer.sender,
            receiver=transfer.receiver,
        )

    def _proxy(self, action: str, ethereum_hash: str) -> Optional[dict]:
        """Call a proxy-module action and return its ``result`` object."""
        params = {
            "chainid": self.config.chain_id,
            "module": "proxy",
            "action": action,
            "txhash": ethereum_hash,
            "apikey": self.config.api_key,
        }
        payload = self._get(params)
        if not isinstance(payload, dict):
            return None

        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning(f"Etherscan {action} error: {str(message)[:120]}")
            return None

        result = payload.get("result")
        if isinstance(result, str) and "rate limit" in result.lower():
            raise _Throttled()
        if not isinstance(result, dict):
            return None
        return result
