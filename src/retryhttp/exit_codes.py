"""Numeric process exit codes used by the ``retryhttp`` command line.

Each constant maps to a failure category and is referenced by the
corresponding :class:`~retryhttp.exceptions.RetryHTTPError` subclass.
Shell wrappers can inspect the exit code to tell a refused connection from
a 5xx without parsing stderr.

Example::

    $ retryhttp send GET https://httpbin.org/status/503
    $ echo $?
    5   # EXIT_SERVER_ERROR -- the server answered with a 5xx
"""

EXIT_SUCCESS = 0
"""The request completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or the request could not be built."""

EXIT_CLIENT_ERROR = 4
"""The server answered with an HTTP 4xx status."""

EXIT_SERVER_ERROR = 5
"""The server answered with an HTTP 5xx status."""

EXIT_CONNECTION_ERROR = 6
"""No response was received (timeout, DNS failure, connection refused or reset)."""

EXIT_DECODE_ERROR = 7
"""The response succeeded but its body could not be read or decoded."""

EXIT_CANCELLED = 130
"""The request was cancelled before it completed."""
