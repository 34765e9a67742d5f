"""Batched token state reads through Multicall3 ``aggregate3``.

One eth_call per chunk of tokens; each token contributes one sub-call per
view function. Sub-calls are allowed to fail individually: a failed or
undecodable return leaves that field as None instead of failing the batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector
from loguru import logger

from launchstats.chain.client import ChainClient
from launchstats.chain.events import normalize_address

AGGREGATE3_SELECTOR = function_signature_to_4byte_selector("aggregate3((address,bool,bytes)[])")

# field name -> (function signature, return type)
TOKEN_VIEWS: dict[str, tuple[str, str]] = {
    "graduated": ("graduated()", "bool"),
    "deleted": ("deleted()", "bool"),
    "pls_reserve": ("plsReserve()", "uint256"),
    "current_price": ("getCurrentPrice()", "uint256"),
    "creator": ("creator()", "address"),
}


@dataclass(frozen=True)
class TokenState:
    address: str
    graduated: bool | None = None
    deleted: bool | None = None
    pls_reserve: int | None = None
    current_price: int | None = None
    creator: str | None = None

    @property
    def is_active(self) -> bool:
        return self.graduated is False and self.deleted is False


@dataclass(frozen=True)
class TokenStateSummary:
    total: int
    active: int
    graduated: int
    deleted: int
    unknown: int
    total_reserve: int


def encode_aggregate3(calls: list[tuple[str, bytes]]) -> bytes:
    """Encode ``aggregate3`` calldata with allowFailure set on every call."""
    payload = [(target, True, data) for target, data in calls]
    return AGGREGATE3_SELECTOR + encode(["(address,bool,bytes)[]"], [payload])


def decode_aggregate3(data: bytes) -> list[tuple[bool, bytes]]:
    (results,) = decode(["(bool,bytes)[]"], data)
    return [(bool(ok), bytes(ret)) for ok, ret in results]


def _decode_view(return_type: str, success: bool, data: bytes) -> Any:
    if not success or not data:
        return None
    try:
        (value,) = decode([return_type], data)
    except DecodingError:
        return None
    if return_type == "address":
        return value.lower()
    return value


class TokenStateReader:
    """Reads launchpad token view functions in Multicall3 batches."""

    def __init__(self, client: ChainClient, multicall_address: str) -> None:
        self._client = client
        self._multicall = normalize_address(multicall_address)
        self._selectors = {
            field: function_signature_to_4byte_selector(sig)
            for field, (sig, _) in TOKEN_VIEWS.items()
        }

    def _build_calls(self, tokens: list[str]) -> list[tuple[str, bytes]]:
        return [
            (token, self._selectors[field])
            for token in tokens
            for field in TOKEN_VIEWS
        ]

    def _merge(self, tokens: list[str], results: list[tuple[bool, bytes]]) -> dict[str, TokenState]:
        fields = list(TOKEN_VIEWS)
        states: dict[str, TokenState] = {}
        for i, token in enumerate(tokens):
            values: dict[str, Any] = {}
            for j, field in enumerate(fields):
                success, data = results[i * len(fields) + j]
                values[field] = _decode_view(TOKEN_VIEWS[field][1], success, data)
            states[token] = TokenState(address=token, **values)
        return states

    async def read_states(
        self, tokens: list[str], *, chunk_size: int = 100
    ) -> dict[str, TokenState]:
        """Return the merged state of every token, keyed by lower-case address."""
        normalized = list(dict.fromkeys(normalize_address(t) for t in tokens))
        states: dict[str, TokenState] = {}

        for start in range(0, len(normalized), chunk_size):
            chunk = normalized[start : start + chunk_size]
            calldata = encode_aggregate3(self._build_calls(chunk))
            raw = await self._client.call(self._multicall, calldata)
            try:
                results = decode_aggregate3(raw)
            except DecodingError as e:
                logger.warning(f"[MULTICALL] Undecodable aggregate3 response: {e}")
                results = []

            if len(results) != len(chunk) * len(TOKEN_VIEWS):
                logger.warning(
                    f"[MULTICALL] Expected {len(chunk) * len(TOKEN_VIEWS)} results, "
                    f"got {len(results)}; marking chunk unknown"
                )
                states.update({t: TokenState(address=t) for t in chunk})
                continue

            states.update(self._merge(chunk, results))

        return states


def summarize(states: dict[str, TokenState]) -> TokenStateSummary:
    graduated = sum(1 for s in states.values() if s.graduated)
    deleted = sum(1 for s in states.values() if s.deleted)
    unknown = sum(1 for s in states.values() if s.graduated is None and s.deleted is None)
    active = sum(1 for s in states.values() if s.is_active)
    return TokenStateSummary(
        total=len(states),
        active=active,
        graduated=graduated,
        deleted=deleted,
        unknown=unknown,
        total_reserve=sum(s.pls_reserve or 0 for s in states.values()),
    )
