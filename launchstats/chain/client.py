"""Async JSON-RPC client for the EVM chain (logs, blocks, eth_call)."""

import asyncio
import itertools
from typing import Any

import httpx
from loguru import logger

from launchstats.chain.exceptions import RpcResponseError, RpcTransportError
from launchstats.chain.models import BlockHeader, RawLog
from launchstats.rate_limiter import RateLimiter

MAX_RETRIES = 3
RETRY_DELAYS = [1.0, 2.0, 4.0]


class ChainClient:
    """Read-only JSON-RPC client over HTTPS.

    Retries on HTTP 429, timeouts and connection errors. JSON-RPC error
    objects are not retried: they raise ``RpcResponseError`` immediately.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        max_rps: float = 10.0,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delays: list[float] | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self._rate_limiter = RateLimiter(max_rps)
        self._retry_delays = retry_delays if retry_delays is not None else RETRY_DELAYS
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    def _delay(self, attempt: int) -> float:
        if not self._retry_delays:
            return 0.0
        return self._retry_delays[min(attempt, len(self._retry_delays) - 1)]

    async def request(self, method: str, params: list[Any]) -> Any:
        """Send a JSON-RPC request and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        last_error: Exception | None = None
        for attempt in range(MAX_RETRIES):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.post(self._rpc_url, json=payload)
            except httpx.TransportError as e:
                last_error = e
                if attempt < MAX_RETRIES - 1:
                    delay = self._delay(attempt)
                    logger.debug(f"[RPC] {method} {type(e).__name__}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                continue

            if resp.status_code == 429:
                last_error = httpx.HTTPStatusError(
                    "429 rate limited", request=resp.request, response=resp
                )
                if attempt < MAX_RETRIES - 1:
                    delay = self._delay(attempt)
                    retry_after = resp.headers.get("Retry-After")
                    if retry_after:
                        delay = max(float(retry_after), delay)
                    logger.debug(f"[RPC] {method} 429 rate limited, retrying in {delay}s")
                    await asyncio.sleep(delay)
                continue

            if resp.status_code != 200:
                raise RpcTransportError(f"{method} HTTP {resp.status_code}")

            try:
                data = resp.json()
            except ValueError as e:
                raise RpcTransportError(f"{method} returned a non-JSON body") from e
            if not isinstance(data, dict):
                raise RpcTransportError(f"{method} returned {type(data).__name__}, expected object")

            err = data.get("error")
            if err:
                if not isinstance(err, dict):
                    raise RpcResponseError(method, None, str(err))
                raise RpcResponseError(method, err.get("code"), err.get("message", ""))
            return data.get("result")

        raise RpcTransportError(f"{method} failed after {MAX_RETRIES} attempts: {last_error}")

    async def get_block_number(self) -> int:
        result = await self.request("eth_blockNumber", [])
        return int(result, 16)

    async def get_block(self, number: int) -> BlockHeader:
        result = await self.request("eth_getBlockByNumber", [hex(number), False])
        if result is None:
            raise RpcResponseError("eth_getBlockByNumber", None, f"block {number} not found")
        return BlockHeader.model_validate(result)

    async def get_block_timestamp(self, number: int) -> int:
        return (await self.get_block(number)).timestamp

    async def get_logs(
        self,
        address: str | list[str],
        topics: list[str | list[str] | None],
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """Fetch logs for one or many contract addresses over a block range."""
        params = {
            "address": address,
            "topics": topics,
            "fromBlock": hex(max(from_block, 0)),
            "toBlock": hex(to_block),
        }
        result = await self.request("eth_getLogs", [params]) or []
        return [RawLog.model_validate(item) for item in result if not item.get("removed")]

    async def call(self, to: str, data: bytes, block: str | int = "latest") -> bytes:
        """Execute ``eth_call`` and return the raw return data."""
        block_tag = hex(block) if isinstance(block, int) else block
        result = await self.request(
            "eth_call", [{"to": to, "data": "0x" + data.hex()}, block_tag]
        )
        return bytes.fromhex((result or "0x")[2:])
