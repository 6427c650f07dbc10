__all__ = [
    "SchemaConflictError",
    "InvalidKeyError",
    "StoreError",
]


class SchemaConflictError(Exception):
    """
    Raised when a schema node both whitelists and blacklists fields and
    strict analysis was requested.

    Without `strict`, the blacklist takes precedence and the whitelist is
    ignored at that node.
    """

    path: str
    whitelist: tuple[str, ...]
    blacklist: tuple[str, ...]

    def __init__(
        self,
        whitelist: tuple[str, ...],
        blacklist: tuple[str, ...],
        path: str = "",
    ):
        self.path = path
        self.whitelist = whitelist
        self.blacklist = blacklist
        super().__init__(
            f"Schema at '{path or '/'}' has both included fields {list(whitelist)} and excluded fields {list(blacklist)}"
        )


class InvalidKeyError(Exception):
    """
    Raised by a store reference when a key contains characters the store
    does not accept. Use {obj}`encode_key` to escape application keys.
    """

    key: str

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Invalid key for store: {key!r}")


class StoreError(Exception):
    """
    Raised when a request to a remote store fails.
    """

    status: int | None
    reason: str

    def __init__(self, reason: str, status: int | None = None):
        self.status = status
        self.reason = reason
        status_str = f"status={status}, " if status is not None else ""
        super().__init__(f"Store request failed: {status_str}reason={reason}")
