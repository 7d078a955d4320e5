"""JSON-RPC transport for contract-lifecycle library."""

import itertools
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .constants import RETRYABLE_HTTP_STATUSES, RPC_BACKOFF_SECONDS, RPC_RETRIES
from .exceptions import RpcError, RpcUnavailableError, TransactionRejectedError

logger = logging.getLogger(__name__)


class _GatewayStatusError(Exception):
    """A 429/502/503/504 answer; the request may be retried."""


# Failures after which the request may or may not have reached the node
_TRANSIENT_FAILURES = (requests.ConnectionError, requests.Timeout, _GatewayStatusError)


class JsonRpcClient:
    """Minimal Ethereum JSON-RPC client over HTTP."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        retries: int = RPC_RETRIES,
        backoff: float = RPC_BACKOFF_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: RPC endpoint URL
            timeout: Per-request timeout in seconds
            retries: Extra attempts after a transient transport failure
            backoff: Base delay between attempts (doubled each retry)
            session: Optional requests session to reuse connections
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        response = self._session.post(self.endpoint, json=payload, timeout=self.timeout)
        if response.status_code in RETRYABLE_HTTP_STATUSES:
            raise _GatewayStatusError(f"HTTP {response.status_code}")
        return response

    def call(self, method: str, params: Optional[List[Any]] = None, retry: bool = True) -> Any:
        """
        Perform a JSON-RPC call.

        Connection errors, timeouts and HTTP 429/5xx gateway statuses are
        retried; an error object in the response is final.

        Args:
            method: RPC method, e.g. "eth_getTransactionReceipt"
            params: Positional parameters
            retry: Retry transient transport failures. Pass False for calls
                   that must not be repeated, such as eth_sendRawTransaction

        Returns:
            The ``result`` member of the response

        Raises:
            RpcUnavailableError: If every attempt failed in transport, so the
                                 node may or may not have seen the request
            RpcError: If the endpoint answers with a non-200 status or returns
                      an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }

        attempts = self.retries + 1 if retry else 1
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.backoff),
            retry=retry_if_exception_type(_TRANSIENT_FAILURES),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )
        try:
            response = retrying(self._post, payload)
        except _TRANSIENT_FAILURES as e:
            raise RpcUnavailableError(
                f"RPC request {method} to {self.endpoint} failed after {attempts} attempts ({e})"
            ) from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise RpcError(f"RPC request {method} failed with status {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise RpcError(f"RPC response to {method} is not JSON") from e

        # Check for RPC errors
        if "error" in result:
            raise RpcError(f"RPC error from {method}: {result['error']}")

        return result.get("result")

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120.0,
        poll_interval: float = 1.0,
        confirmations: int = 1,
    ) -> Dict[str, Any]:
        """
        Block until a transaction is mined and sufficiently confirmed.

        Args:
            tx_hash: 0x-prefixed transaction hash
            timeout: Seconds to wait before giving up
            poll_interval: Seconds between polls
            confirmations: Blocks required including the inclusion block

        Returns:
            The transaction receipt

        Raises:
            TransactionRejectedError: If the transaction was mined but reverted
            RpcError: If no sufficiently confirmed receipt appears in time
        """
        deadline = time.monotonic() + timeout
        while True:
            receipt = self.call("eth_getTransactionReceipt", [tx_hash])
            if receipt and receipt.get("blockNumber"):
                if receipt.get("status") == "0x0":
                    raise TransactionRejectedError(f"Transaction {tx_hash} reverted")
                if confirmations <= 1:
                    return receipt
                head = int(self.call("eth_blockNumber"), 16)
                if head - int(receipt["blockNumber"], 16) + 1 >= confirmations:
                    return receipt

            if time.monotonic() >= deadline:
                raise RpcError(f"Timed out waiting for transaction {tx_hash}")
            time.sleep(poll_interval)
