"""
Chain-query capability and a lightweight JSON-RPC implementation.

The verifiers depend only on the ChainQuery protocol. Any object with these
three coroutine methods works; no base class is required. An optional
`validator_address` attribute names the ERC-6492 universal validator to
simulate against; objects without it use the configured default.
"""

import itertools
import logging
from typing import Any, List, Optional, Protocol

import httpx
from eth_utils import decode_hex, encode_hex

from assoc_verifier.core.config import RPC_TIMEOUT_SECONDS, RPC_URL, UNIVERSAL_VALIDATOR_ADDRESS
from .exceptions import ChainQueryError

log = logging.getLogger(__name__)


class ChainQuery(Protocol):
    """Read-only chain access used by contract-signature verification."""

    # UniversalSigValidator deployment on this chain, None when unavailable
    validator_address: Optional[str]

    async def get_code(self, address: str) -> Optional[bytes]:
        """Deployed bytecode at address, or None/empty when there is none."""
        ...

    async def read_contract(self, address: str, selector: bytes, args: bytes) -> bytes:
        """Call a view method: selector + ABI-encoded args. Returns raw return data."""
        ...

    async def call(self, address: str, calldata: bytes) -> bytes:
        """State-simulating call that commits nothing. Returns raw return data."""
        ...


class JsonRpcChainClient:
    """ChainQuery over Ethereum JSON-RPC (eth_getCode / eth_call).

    Every failure (transport, HTTP status, JSON-RPC error object, malformed
    result) raises ChainQueryError. No retries are attempted.

    Usage:
        async with JsonRpcChainClient("https://sepolia.base.org") as chain:
            code = await chain.get_code("0x...")
    """

    def __init__(
        self,
        rpc_url: str = RPC_URL,
        timeout: float = RPC_TIMEOUT_SECONDS,
        block: str = "latest",
        client: Optional[httpx.AsyncClient] = None,
        validator_address: Optional[str] = UNIVERSAL_VALIDATOR_ADDRESS,
    ):
        """Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint.
            timeout: Per-request timeout in seconds.
            block: Block tag for reads.
            client: Pre-built httpx.AsyncClient (tests inject a MockTransport).
            validator_address: ERC-6492 universal validator deployment, None
                disables the simulated isValidSig call.
        """
        self.rpc_url = rpc_url
        self.block = block
        self.validator_address = validator_address
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "JsonRpcChainClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        request_id = next(self._ids)
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}

        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            log.warning(f"RPC timeout: method={method} url={self.rpc_url}")
            raise ChainQueryError(f"{method} timed out") from e
        except httpx.HTTPStatusError as e:
            log.warning(f"RPC HTTP error: method={method} status={e.response.status_code}")
            raise ChainQueryError(f"{method} HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.warning(f"RPC transport error: method={method} error={e}")
            raise ChainQueryError(f"{method} transport error: {e}") from e
        except ValueError as e:
            raise ChainQueryError(f"{method} returned non-JSON body") from e

        if not isinstance(body, dict):
            raise ChainQueryError(f"{method} returned malformed response")

        error = body.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            revert_data = None
            data = error.get("data") if isinstance(error, dict) else None
            if isinstance(data, str) and data.startswith("0x"):
                try:
                    revert_data = decode_hex(data)
                except ValueError:
                    revert_data = None
            log.debug(f"RPC error: method={method} message={message}")
            raise ChainQueryError(f"{method} failed: {message}", revert_data=revert_data)

        if "result" not in body:
            raise ChainQueryError(f"{method} response has no result")
        return body["result"]

    def _decode_result(self, method: str, result: Any) -> bytes:
        if not isinstance(result, str):
            raise ChainQueryError(f"{method} result is not a hex string")
        try:
            return decode_hex(result)
        except ValueError as e:
            raise ChainQueryError(f"{method} result is not valid hex") from e

    async def get_code(self, address: str) -> Optional[bytes]:
        result = await self._rpc("eth_getCode", [address, self.block])
        code = self._decode_result("eth_getCode", result)
        return code or None

    async def read_contract(self, address: str, selector: bytes, args: bytes) -> bytes:
        return await self.call(address, selector + args)

    async def call(self, address: str, calldata: bytes) -> bytes:
        tx = {"to": address, "data": encode_hex(calldata)}
        result = await self._rpc("eth_call", [tx, self.block])
        return self._decode_result("eth_call", result)
