class ChainError(Exception):
    pass


class RpcTransportError(ChainError):
    """HTTP-level failure after retries were exhausted."""


class RpcResponseError(ChainError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, method: str, code: int | None, message: str) -> None:
        self.method = method
        self.code = code
        super().__init__(f"{method} failed ({code}): {message}")


class EventDecodeError(ChainError):
    pass
