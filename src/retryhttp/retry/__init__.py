"""Retry policies evaluated by the retrying sender after every attempt.

A policy has the signature ``(response, error) -> RetryDecision`` and must
only inspect its arguments: it may look at the status line and headers but
never read the response body.
"""

from retryhttp.retry.policies import do_not_retry, retry_on_eof, retry_on_status

__all__ = ["do_not_retry", "retry_on_eof", "retry_on_status"]
