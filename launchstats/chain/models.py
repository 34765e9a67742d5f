"""Raw JSON-RPC payload models (hex quantities decoded to int)."""

from pydantic import BaseModel, Field, field_validator


def _hex_to_int(value: object) -> object:
    if isinstance(value, str) and value.startswith("0x"):
        return int(value, 16)
    return value


class RawLog(BaseModel):
    address: str
    topics: list[str] = Field(default_factory=list)
    data: str = "0x"
    block_number: int = Field(0, alias="blockNumber")
    transaction_hash: str = Field("", alias="transactionHash")
    log_index: int = Field(0, alias="logIndex")
    removed: bool = False

    model_config = {"extra": "ignore", "populate_by_name": True}

    @field_validator("block_number", "log_index", mode="before")
    @classmethod
    def _parse_quantity(cls, v: object) -> object:
        return _hex_to_int(v)

    @field_validator("address", mode="before")
    @classmethod
    def _lower_address(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v


class BlockHeader(BaseModel):
    number: int
    timestamp: int
    hash: str = ""

    model_config = {"extra": "ignore"}

    @field_validator("number", "timestamp", mode="before")
    @classmethod
    def _parse_quantity(cls, v: object) -> object:
        return _hex_to_int(v)
