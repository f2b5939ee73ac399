# src/servicecall/cli.py
"""servicecall Command Line Interface.

Entry point for the servicecall CLI tool: send one resilient request to a
service and print the response.

Example:
    servicecall request GET /orders/42 --service orders --instance http://10.0.0.1:8080
    servicecall --verbose request POST /orders -s client.yaml -d '{"sku": "A-1"}' --json
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from servicecall import __version__
from servicecall.client import ServiceClient
from servicecall.contracts import Body, HttpMethod, RequestOptions, Response
from servicecall.core.config import ClientSettings, RegistrySettings, load_settings
from servicecall.errors import ArgumentError, DispatchError

__all__ = [
    "app",
]

# Exit codes
EXIT_OK = 0
EXIT_DISPATCH_FAILED = 1
EXIT_USAGE = 2

app = typer.Typer(
    name="servicecall",
    help="servicecall: resilient HTTP requests to registry-resolved services.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"servicecall version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(EXIT_USAGE)
        return load_dotenv(env_file, override=False)

    # load_dotenv searches current dir and parents by default
    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # We handle existence check ourselves for better error message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """servicecall: resilient HTTP requests to registry-resolved services."""
    from servicecall.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "WARNING"
    configure_logging(json_output=json_logs, level=log_level)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _parse_pairs(values: list[str] | None, separator: str, option: str) -> dict[str, str]:
    """Parse repeated KEY<sep>VALUE options into a dict.

    Raises:
        ArgumentError: If an entry has no separator or an empty key
    """
    pairs: dict[str, str] = {}
    for entry in values or []:
        key, sep, value = entry.partition(separator)
        key = key.strip()
        if not sep or not key:
            raise ArgumentError(f"{option} expects KEY{separator}VALUE, got {entry!r}")
        pairs[key] = value.strip()
    return pairs


def _build_settings(
    settings_file: str | None,
    service: str | None,
    instances: list[str] | None,
    retries: int | None,
    timeout: float | None,
) -> ClientSettings:
    """Combine a settings file (optional) with command-line overrides.

    Raises:
        ArgumentError: If neither a settings file nor --service is given
        ValidationError: If the combined settings are invalid
    """
    if settings_file is not None:
        base = load_settings(Path(settings_file).expanduser())
        data = base.model_dump()
    else:
        if not service:
            raise ArgumentError("either --settings or --service is required")
        data = {"service_name": service}

    if service:
        data["service_name"] = service
    if instances:
        registry = dict(data.get("registry") or {})
        registry["instances"] = list(instances)
        data["registry"] = RegistrySettings(**registry).model_dump()
    if retries is not None:
        retry = dict(data.get("retry") or {})
        retry["max_attempts"] = retries
        data["retry"] = retry
    if timeout is not None:
        data["request_timeout_seconds"] = timeout

    return ClientSettings(**data)


def _echo_response(response: Response, *, include_headers: bool) -> None:
    if include_headers:
        typer.echo(f"HTTP {response.status}")
        for name, value in response.headers.items():
            typer.echo(f"{name}: {value}")
        typer.echo("")
    else:
        typer.echo(f"HTTP {response.status}", err=True)
    if response.body:
        typer.echo(response.text)


async def _send(
    settings: ClientSettings,
    method: HttpMethod,
    path: str,
    options: RequestOptions,
    body: Body | None,
) -> Response:
    async with ServiceClient.from_settings(settings) as client:
        return await client.method(
            path,
            {
                "method": str(method),
                "headers": dict(options.headers),
                "query": dict(options.query) if options.query is not None else None,
                "correlation_id": options.correlation_id,
            },
            body,
        )


@app.command()
def request(
    method: str = typer.Argument(..., help="HTTP method (GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS)."),
    path: str = typer.Argument(..., help="Request path, relative to the resolved instance URL."),
    service: str | None = typer.Option(
        None,
        "--service",
        "-S",
        help="Logical service name (overrides the settings file).",
    ),
    instances: list[str] | None = typer.Option(
        None,
        "--instance",
        "-i",
        help="Instance base URL for the static registry. Repeatable.",
    ),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    headers: list[str] | None = typer.Option(
        None,
        "--header",
        "-H",
        help="Request header as 'Name: value'. Repeatable.",
    ),
    query: list[str] | None = typer.Option(
        None,
        "--query",
        "-q",
        help="Query parameter as 'key=value'. Repeatable.",
    ),
    data: str | None = typer.Option(
        None,
        "--data",
        "-d",
        help="Request body.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Parse --data as JSON and send it with a JSON content type.",
    ),
    correlation_id: str | None = typer.Option(
        None,
        "--correlation-id",
        help="Correlation id to send (generated when omitted).",
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        "-r",
        min=1,
        help="Maximum attempts, including the first.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Per-attempt timeout in seconds.",
    ),
    include: bool = typer.Option(
        False,
        "--include",
        help="Print the status line and response headers to stdout.",
    ),
) -> None:
    """Send one request, retrying per the configured budget.

    Exit codes: 0 on a successful response, 1 when the call failed
    (4xx, or retries exhausted), 2 on invalid arguments or settings.
    """
    try:
        http_method = HttpMethod.parse(method)
        options = RequestOptions.from_mapping(
            {
                "headers": _parse_pairs(headers, ":", "--header"),
                "query": _parse_pairs(query, "=", "--query") or None,
                "correlation_id": correlation_id,
            }
        )
        body: Body | None = data
        if data is not None and as_json:
            try:
                body = json.loads(data)
            except json.JSONDecodeError as e:
                raise ArgumentError(f"--data is not valid JSON: {e.msg}") from None
        client_settings = _build_settings(settings, service, instances, retries, timeout)
    except ArgumentError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_USAGE) from None
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(EXIT_USAGE) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(EXIT_USAGE) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(EXIT_USAGE) from None

    if not client_settings.registry.instances:
        typer.echo("Error: no instances configured; pass --instance or set registry.instances", err=True)
        raise typer.Exit(EXIT_USAGE)

    try:
        response = asyncio.run(_send(client_settings, http_method, path, options, body))
    except DispatchError as e:
        typer.echo(f"Error: {e}", err=True)
        failure_response = getattr(e, "response", None)
        if isinstance(failure_response, Response) and failure_response.body:
            typer.echo(failure_response.text)
        raise typer.Exit(EXIT_DISPATCH_FAILED) from None

    _echo_response(response, include_headers=include)
