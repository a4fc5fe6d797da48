"""Typer application and CLI entry point for retryhttp.

``retryhttp send`` builds a request from the command line, sends it through
:class:`~retryhttp.client.Client` and prints the response body to stdout.
Status lines, wire dumps and errors go to stderr. Defaults for timeouts and
retries come from ``RETRYHTTP_*`` environment variables
(see :mod:`retryhttp.config`); flags override them.

Example::

    $ retryhttp send POST https://httpbin.org/post --data '{"key":"value"}' \\
        --max-retries 2 --retry-on-eof --dump-request --dump-body
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Optional

import typer

from retryhttp import __version__
from retryhttp.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="retryhttp",
    help="Send HTTP requests with opt-in retries and wire dumps.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"retryhttp {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise the global output manager from the shared flags."""
    from retryhttp.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


@app.command("send")
def send_command(
    method: str = typer.Argument(..., help="HTTP method, e.g. GET or POST."),
    url: str = typer.Argument(..., help="Absolute request URL."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header as 'Name: value'. Repeatable."
    ),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="JSON request body, sent unmodified."
    ),
    bearer: Optional[str] = typer.Option(None, "--bearer", help="Bearer token."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-attempt timeout (s)."),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Overall deadline across all attempts (s)."
    ),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", help="Retries after the first attempt."),
    retry_on_eof: bool = typer.Option(
        False, "--retry-on-eof", help="Retry when the connection is reset or ends early."
    ),
    retry_status: Optional[list[int]] = typer.Option(
        None, "--retry-status", help="Retry responses with this status. Repeatable."
    ),
    retry_wait_min: Optional[float] = typer.Option(None, "--retry-wait-min", help="Minimum backoff (s)."),
    retry_wait_max: Optional[float] = typer.Option(None, "--retry-wait-max", help="Maximum backoff (s)."),
    dump_request: bool = typer.Option(False, "--dump-request", help="Print the request to stderr."),
    dump_response: bool = typer.Option(False, "--dump-response", help="Print the response to stderr."),
    dump_body: bool = typer.Option(False, "--dump-body", help="Include bodies in dumps."),
) -> None:
    """Send one request and print the response body."""
    from retryhttp.exceptions import RetryHTTPError
    from retryhttp.output import get_output

    output = get_output()
    try:
        response = _send(
            method, url, header or [], data, bearer, timeout, deadline, max_retries,
            retry_on_eof, retry_status or [], retry_wait_min, retry_wait_max,
            dump_request, dump_response, dump_body,
        )
    except RetryHTTPError as exc:
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc

    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())
    body = _response_data(response)
    if body is not None:
        output.format_response(body, response.headers.get("content-type", ""))


def _send(
    method: str,
    url: str,
    header: list[str],
    data: Optional[str],
    bearer: Optional[str],
    timeout: Optional[float],
    deadline: Optional[float],
    max_retries: Optional[int],
    retry_on_eof: bool,
    retry_status: list[int],
    retry_wait_min: Optional[float],
    retry_wait_max: Optional[float],
    dump_request: bool,
    dump_response: bool,
    dump_body: bool,
) -> Any:  # noqa: ANN401
    """Build the request and client from the flags, then send."""
    from retryhttp.client import Client
    from retryhttp.config import load_config_from_env
    from retryhttp.context import RequestContext
    from retryhttp.exceptions import ConfigError
    from retryhttp.output import get_output
    from retryhttp.request import (
        add_authorization_bearer_header,
        new_json_request_with_headers,
        new_request_with_headers,
    )
    from retryhttp.retry import policies

    output = get_output()

    headers = _parse_headers(header)
    ctx = RequestContext(timeout=deadline)
    if data is not None:
        request = new_json_request_with_headers(method.upper(), url, data, headers, context=ctx)
    else:
        request = new_request_with_headers(method.upper(), url, headers, context=ctx)
    if bearer:
        add_authorization_bearer_header(request, bearer)

    check_retry = None
    if retry_status:
        check_retry = policies.retry_on_status(*retry_status)
    elif retry_on_eof:
        check_retry = policies.retry_on_eof
    elif max_retries:
        raise ConfigError("--max-retries needs --retry-on-eof or --retry-status")

    config = load_config_from_env(
        timeout=timeout,
        max_retries=max_retries,
        retry_wait_min=retry_wait_min,
        retry_wait_max=retry_wait_max,
        check_retry=check_retry,
        request_dump_logger=(lambda dump: output.dump("request", dump)) if dump_request else None,
        dump_request_body=dump_body,
        response_dump_logger=(lambda dump: output.dump("response", dump)) if dump_response else None,
        dump_response_body=dump_body,
    )

    with Client(config) as client:
        return client.send_request(request)


def _parse_headers(values: list[str]) -> dict[str, list[str]]:
    """Parse repeated ``Name: value`` flags into a multi-valued mapping."""
    from retryhttp.exceptions import RequestBuildError

    headers: dict[str, list[str]] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise RequestBuildError(f"Invalid header {raw!r}, expected 'Name: value'")
        headers.setdefault(name.strip(), []).append(value.strip())
    return headers


def _response_data(response: Any) -> Any:  # noqa: ANN401
    """Decoded JSON when possible, raw text otherwise, ``None`` when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``retryhttp`` console script.

    Unexpected exceptions are reported on stderr and exit with
    :data:`~retryhttp.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from retryhttp.output import error

        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
