"""
RPC reader for EVM chains

Provides the chain-scoped read interface the adapters depend on:
- eth_call (single and JSON-RPC batch), optionally pinned to a block
- eth_blockNumber
- Endpoint fallback: a failed request is retried once on a different endpoint
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from ..errors import ErrorCode, RpcError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)

# JSON-RPC error code for "execution reverted" (geth, erigon, anvil)
EXECUTION_REVERTED_CODE = 3

CallResult = Union[bytes, RpcError]


@dataclass(frozen=True)
class EthCall:
    """One read-only contract call"""
    to: str
    data: bytes

    def to_param(self) -> dict:
        return {"to": self.to, "data": "0x" + self.data.hex()}


def block_tag(block_number: Optional[int]) -> str:
    """JSON-RPC block parameter ("latest" when not pinned)"""
    if block_number is None:
        return "latest"
    return hex(block_number)


class RpcReader(ABC):
    """
    Chain-scoped read interface

    Implementations must be bound to exactly one chain. The adapters only
    ever call the three operations below, so tests can substitute an
    in-memory fake.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        ...

    @abstractmethod
    async def call(self, to: str, data: bytes, block_number: Optional[int] = None) -> bytes:
        """
        eth_call

        Raises:
            RpcError: Transport failure, revert, or malformed response
        """
        ...

    @abstractmethod
    async def batch_call(
        self,
        calls: Sequence[EthCall],
        block_number: Optional[int] = None,
        allow_failure: bool = False,
    ) -> List[CallResult]:
        """
        Many eth_calls, results in call order

        With ``allow_failure`` a failed call yields its RpcError in place of
        the return data; otherwise the first failure is raised.
        """
        ...

    @abstractmethod
    async def block_number(self) -> int:
        ...


@dataclass
class RpcReaderConfig:
    """
    RPC reader runtime configuration

    Unset values are taken from the global config
    (liquidity_adapter.config.RpcConfig).

    Usage:
        reader = HttpRpcReader(1, endpoints)

        config = RpcReaderConfig(timeout_seconds=5, batch_size=20)
        reader = HttpRpcReader(1, endpoints, config=config)
    """
    timeout_seconds: float = None
    max_endpoint_attempts: int = None
    batch_size: int = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.rpc.timeout_seconds
        if self.max_endpoint_attempts is None:
            self.max_endpoint_attempts = global_config.rpc.max_endpoint_attempts
        if self.batch_size is None:
            self.batch_size = global_config.rpc.batch_size


class HttpRpcReader(RpcReader):
    """
    JSON-RPC over HTTP with endpoint fallback

    Batches are sent as JSON-RPC arrays of at most ``batch_size`` calls.
    A transport failure (timeout, connection error, HTTP error, rate limit)
    rotates to the next endpoint and retries, up to ``max_endpoint_attempts``
    attempts in total. Reverts are deterministic and never retried.

    Usage:
        async with HttpRpcReader(1, ["https://eth.llamarpc.com"]) as rpc:
            block = await rpc.block_number()
            data = await rpc.call(pool, selector, block)
    """

    def __init__(
        self,
        chain_id: int,
        endpoints: Union[str, List[str]],
        config: Optional[RpcReaderConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            chain_id: Chain the endpoints serve
            endpoints: Endpoint URL or ordered fallback list
            config: Reader configuration
            client: Pre-built AsyncClient (tests pass one with a MockTransport)
        """
        self._chain_id = chain_id
        self._endpoints = [endpoints] if isinstance(endpoints, str) else list(endpoints)
        if not self._endpoints:
            raise ConfigurationError.missing(f"RPC endpoint for chain {chain_id}")

        self._config = config or RpcReaderConfig()
        self._current_endpoint_idx = 0
        self._client = client
        self._owns_client = client is None
        self._request_id = 0

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def endpoint(self) -> str:
        """Current active endpoint"""
        return self._endpoints[self._current_endpoint_idx]

    @property
    def endpoints(self) -> List[str]:
        return list(self._endpoints)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    def _rotate_endpoint(self):
        """Rotate to next endpoint on failure"""
        if len(self._endpoints) > 1:
            self._current_endpoint_idx = (self._current_endpoint_idx + 1) % len(self._endpoints)
            logger.info(f"Rotating to RPC endpoint: {self.endpoint}")

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HttpRpcReader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =========================================================================
    # Public interface
    # =========================================================================

    async def call(self, to: str, data: bytes, block_number: Optional[int] = None) -> bytes:
        results = await self.batch_call([EthCall(to, data)], block_number)
        return results[0]

    async def batch_call(
        self,
        calls: Sequence[EthCall],
        block_number: Optional[int] = None,
        allow_failure: bool = False,
    ) -> List[CallResult]:
        if not calls:
            return []

        tag = block_tag(block_number)
        results: List[CallResult] = []
        batch_size = max(1, self._config.batch_size)

        for start in range(0, len(calls), batch_size):
            chunk = calls[start:start + batch_size]
            bodies = [
                self._request_body("eth_call", [call.to_param(), tag])
                for call in chunk
            ]
            outcomes = await self._send_with_fallback(bodies)
            for call, outcome in zip(chunk, outcomes):
                if not isinstance(outcome, RpcError):
                    try:
                        outcome = self._decode_call_result(call, outcome)
                    except RpcError as e:
                        outcome = e
                if isinstance(outcome, RpcError) and not allow_failure:
                    raise outcome
                results.append(outcome)

        return results

    async def block_number(self) -> int:
        outcome = (await self._send_with_fallback([self._request_body("eth_blockNumber", [])]))[0]
        if isinstance(outcome, RpcError):
            raise outcome
        try:
            return int(outcome, 16)
        except (TypeError, ValueError) as e:
            raise RpcError.malformed("eth_blockNumber", e)

    # =========================================================================
    # Transport
    # =========================================================================

    def _request_body(self, method: str, params: List[Any]) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }

    @staticmethod
    def _decode_call_result(call: EthCall, result: Any) -> bytes:
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcError.malformed(f"eth_call to {call.to}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise RpcError.malformed(f"eth_call to {call.to}", e)

    async def _send_with_fallback(self, bodies: List[Dict[str, Any]]) -> List[Union[Any, RpcError]]:
        """
        POST bodies as one JSON-RPC batch, failing over between endpoints

        Returns one entry per body: the raw ``result`` or an RpcError.
        Bodies whose individual error is recoverable are resent on the next
        endpoint while attempts remain.
        """
        attempts = max(1, min(self._config.max_endpoint_attempts, len(self._endpoints)))
        outcomes: Dict[int, Union[Any, RpcError]] = {}
        pending = list(bodies)
        last_error: Optional[RpcError] = None

        for attempt in range(attempts):
            if attempt > 0:
                self._rotate_endpoint()
            endpoint = self.endpoint

            try:
                responses = await self._post(endpoint, pending)
            except RpcError as e:
                last_error = e
                logger.warning(
                    f"RPC request failed on {endpoint} (attempt {attempt + 1}/{attempts}): {e}"
                )
                if not e.recoverable:
                    raise
                continue

            by_id = {
                response.get("id"): response
                for response in responses
                if isinstance(response, dict)
            }
            retry = []
            for body in pending:
                outcome = self._parse_response(endpoint, by_id.get(body["id"]))
                if isinstance(outcome, RpcError) and outcome.recoverable and attempt + 1 < attempts:
                    last_error = outcome
                    retry.append(body)
                else:
                    outcomes[body["id"]] = outcome
            pending = retry
            if not pending:
                break

        if pending:
            raise last_error or RpcError("All RPC endpoints failed")

        return [outcomes[body["id"]] for body in bodies]

    async def _post(self, endpoint: str, payload: List[Dict[str, Any]]) -> List[Any]:
        client = self._get_client()
        timeout_val = self._config.timeout_seconds

        try:
            response = await client.post(endpoint, json=payload, timeout=timeout_val)

            if response.status_code == 429:
                logger.warning(f"Rate limited by {endpoint}")
                raise RpcError.rate_limited(endpoint)

            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException:
            raise RpcError.timeout(endpoint, timeout_val)

        except httpx.HTTPStatusError as e:
            raise RpcError(
                f"HTTP error {e.response.status_code}",
                endpoint=endpoint,
                original_error=e,
            )

        except httpx.RequestError as e:
            raise RpcError.connection_failed(endpoint, e)

        except ValueError as e:
            raise RpcError(
                f"Invalid JSON from {endpoint}",
                ErrorCode.RPC_INVALID_RESPONSE,
                original_error=e,
                endpoint=endpoint,
            )

        if isinstance(data, dict):
            # Batch-level error object (e.g., provider refuses batches)
            if data.get("id") is None and data.get("error"):
                raise self._classify_error(endpoint, data["error"])
            data = [data]
        if not isinstance(data, list):
            raise RpcError(
                f"Unexpected JSON-RPC payload from {endpoint}",
                ErrorCode.RPC_INVALID_RESPONSE,
                endpoint=endpoint,
            )
        return data

    def _parse_response(self, endpoint: str, response: Optional[Dict[str, Any]]) -> Union[Any, RpcError]:
        if response is None:
            return RpcError(
                f"Missing response in batch from {endpoint}",
                ErrorCode.RPC_INVALID_RESPONSE,
                endpoint=endpoint,
            )
        error = response.get("error")
        if error:
            return self._classify_error(endpoint, error)
        return response.get("result")

    @staticmethod
    def _classify_error(endpoint: str, error: Any) -> RpcError:
        if not isinstance(error, dict):
            return RpcError(f"RPC error: {error}", endpoint=endpoint)

        message = str(error.get("message", error))
        code = error.get("code")
        if code == EXECUTION_REVERTED_CODE or "revert" in message.lower():
            rpc_error = RpcError.reverted(endpoint, message)
        else:
            rpc_error = RpcError(f"RPC error: {message}", endpoint=endpoint)

        # Preserve RPC error code in details for debugging
        rpc_error.details["rpc_error_code"] = code
        rpc_error.details["rpc_error_data"] = error.get("data")
        return rpc_error
