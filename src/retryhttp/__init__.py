"""retryhttp -- a small HTTP client with opt-in retries and structured errors.

Build a request, send it, and get back either a response or a single
:class:`~retryhttp.exceptions.HTTPError` describing what went wrong::

    from retryhttp import Client, new_json_request, retry_on_eof
    from retryhttp.options import with_check_retry_policy, with_max_retries

    client = Client.from_options(with_max_retries(1), with_check_retry_policy(retry_on_eof))
    request = new_json_request("POST", "https://api.example.com/items", {"key": "value"})
    response, item = client.send_request_and_decode(request, Item)

Requests are never retried unless a retry policy is configured.

Modules:
    client: the dispatch pipeline and the retrying sender.
    request: request builders.
    context: cancellation and deadlines.
    retry: reference retry policies.
    models: configuration and per-attempt values.
    options: option functions building a :class:`ClientConfig`.
    config: environment-driven configuration.
    exceptions: exception hierarchy with exit-code mapping.
    app: the ``retryhttp`` command line.
"""

__version__ = "0.1.0"

from retryhttp.client import Client, new_client
from retryhttp.context import RequestContext
from retryhttp.exceptions import HTTPError, RequestBuildError, RetryHTTPError, error_matches
from retryhttp.models import ClientConfig, RetryDecision
from retryhttp.request import (
    add_authorization_bearer_header,
    new_json_request,
    new_json_request_with_headers,
    new_request,
    new_request_with_headers,
)
from retryhttp.retry import do_not_retry, retry_on_eof, retry_on_status

__all__ = [
    "Client",
    "ClientConfig",
    "HTTPError",
    "RequestBuildError",
    "RequestContext",
    "RetryDecision",
    "RetryHTTPError",
    "__version__",
    "add_authorization_bearer_header",
    "do_not_retry",
    "error_matches",
    "new_client",
    "new_json_request",
    "new_json_request_with_headers",
    "new_request",
    "new_request_with_headers",
    "retry_on_eof",
    "retry_on_status",
]
