"""HTTP client module for retryhttp.

Provides the synchronous :class:`Client`, which wraps :mod:`httpx` with
opt-in retries (via :mod:`tenacity`), wire dumps, structured errors and JSON
decoding into typed destinations.

Example::

    from retryhttp.client import Client

    with Client() as client:
        response = client.send_request(new_request("GET", "https://api.example.com/users"))
"""

from retryhttp.client.sender import RetryingSender
from retryhttp.client.sync_client import Client, new_client

__all__ = ["Client", "RetryingSender", "new_client"]
