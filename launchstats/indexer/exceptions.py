class IndexerError(Exception):
    pass


class IndexerUnavailableError(IndexerError):
    """Indexer could not be reached (timeout, connection refused)."""


class IndexerApiError(IndexerError):
    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(f"Indexer API error {status_code}: {message}")
