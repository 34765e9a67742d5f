"""Launchpad event definitions and log decoding.

Factory:
    TokenCreated(address indexed token, address indexed creator,
                 string name, string symbol, address referrer)
Token (bonding curve):
    TokenBought(address indexed buyer, uint256 plsSpent, uint256 tokensBought,
                address indexed referrer)
    TokenSold(address indexed seller, uint256 tokensSold, uint256 plsReceived)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak
from loguru import logger

from launchstats.chain.exceptions import EventDecodeError
from launchstats.chain.models import RawLog
from launchstats.fees import TradeSide

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def event_topic(signature: str) -> str:
    return "0x" + keccak(text=signature).hex()


TOKEN_CREATED_TOPIC = event_topic("TokenCreated(address,address,string,string,address)")
TOKEN_BOUGHT_TOPIC = event_topic("TokenBought(address,uint256,uint256,address)")
TOKEN_SOLD_TOPIC = event_topic("TokenSold(address,uint256,uint256)")


def normalize_address(addr: str) -> str:
    """Lower-case 0x address; raises ValueError on malformed input."""
    if not isinstance(addr, str):
        raise ValueError(f"address must be a string, got: {type(addr)}")
    addr = addr.strip().lower()
    if not addr.startswith("0x") or len(addr) != 42:
        raise ValueError(f"invalid address format: {addr}")
    int(addr[2:], 16)
    return addr


def topic_to_address(topic: str) -> str:
    return "0x" + topic[-40:].lower()


@dataclass(frozen=True)
class TokenCreated:
    token: str
    creator: str
    name: str
    symbol: str
    referrer: str
    block_number: int


@dataclass(frozen=True)
class TradeEvent:
    """A decoded buy or sell. ``timestamp`` is 0 until the block is resolved."""

    token: str
    actor: str
    side: TradeSide
    native_amount: int  # PLS spent (buy) or received (sell)
    counter_amount: int  # tokens bought or sold
    block_number: int
    timestamp: int = 0
    tx_hash: str = ""
    log_index: int = 0
    referrer: str = ZERO_ADDRESS

    @property
    def key(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    @property
    def price(self) -> Decimal | None:
        """Native units per token unit, None when no tokens moved."""
        if self.counter_amount == 0:
            return None
        return Decimal(self.native_amount) / Decimal(self.counter_amount)


def _data_bytes(log: RawLog) -> bytes:
    try:
        return bytes.fromhex(log.data[2:] if log.data.startswith("0x") else log.data)
    except ValueError as e:
        raise EventDecodeError(f"log {log.transaction_hash}: bad data hex") from e


def _require_topics(log: RawLog, topic0: str, count: int) -> None:
    if not log.topics or log.topics[0].lower() != topic0:
        raise EventDecodeError(f"log {log.transaction_hash}: unexpected topic0")
    if len(log.topics) < count:
        raise EventDecodeError(
            f"log {log.transaction_hash}: expected {count} topics, got {len(log.topics)}"
        )


def decode_token_created(log: RawLog) -> TokenCreated:
    _require_topics(log, TOKEN_CREATED_TOPIC, 3)
    try:
        name, symbol, referrer = decode(["string", "string", "address"], _data_bytes(log))
    except DecodingError as e:
        raise EventDecodeError(f"log {log.transaction_hash}: {e}") from e
    return TokenCreated(
        token=topic_to_address(log.topics[1]),
        creator=topic_to_address(log.topics[2]),
        name=name,
        symbol=symbol,
        referrer=referrer.lower(),
        block_number=log.block_number,
    )


def decode_trade(log: RawLog) -> TradeEvent:
    """Decode a TokenBought or TokenSold log into a TradeEvent."""
    topic0 = log.topics[0].lower() if log.topics else ""
    data = _data_bytes(log)

    try:
        if topic0 == TOKEN_BOUGHT_TOPIC:
            _require_topics(log, TOKEN_BOUGHT_TOPIC, 3)
            pls_spent, tokens_bought = decode(["uint256", "uint256"], data)
            return TradeEvent(
                token=log.address,
                actor=topic_to_address(log.topics[1]),
                side=TradeSide.BUY,
                native_amount=pls_spent,
                counter_amount=tokens_bought,
                block_number=log.block_number,
                tx_hash=log.transaction_hash,
                log_index=log.log_index,
                referrer=topic_to_address(log.topics[2]),
            )
        if topic0 == TOKEN_SOLD_TOPIC:
            _require_topics(log, TOKEN_SOLD_TOPIC, 2)
            tokens_sold, pls_received = decode(["uint256", "uint256"], data)
            return TradeEvent(
                token=log.address,
                actor=topic_to_address(log.topics[1]),
                side=TradeSide.SELL,
                native_amount=pls_received,
                counter_amount=tokens_sold,
                block_number=log.block_number,
                tx_hash=log.transaction_hash,
                log_index=log.log_index,
            )
    except DecodingError as e:
        raise EventDecodeError(f"log {log.transaction_hash}: {e}") from e

    raise EventDecodeError(f"log {log.transaction_hash}: not a trade event")


def decode_trades(logs: list[RawLog]) -> list[TradeEvent]:
    """Decode trade logs, dropping (and logging) the ones that don't decode."""
    events: list[TradeEvent] = []
    for log in logs:
        try:
            events.append(decode_trade(log))
        except EventDecodeError as e:
            logger.debug(f"[EVENTS] Skipping undecodable log: {e}")
    return events
