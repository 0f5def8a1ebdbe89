from chainplan.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from chainplan.clients.explorer import ExplorerClient, ExplorerError

__all__ = [
    "BaseHTTPClient",
    "ExplorerClient",
    "ExplorerError",
    "PermanentHTTPError",
    "RetryableHTTPError",
]
