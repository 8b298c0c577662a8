"""Click commands: run the server, submit errors, watch the event stream."""

from __future__ import annotations

import asyncio
import json
import sys

import click
import httpx

DEFAULT_URL = "http://localhost:8080"
_API_PREFIX = "/api/v1"


@click.group()
@click.version_option(package_name="errorflow")
def cli() -> None:
    """ErrorFlow: classify error messages and stream processing progress."""


@cli.command()
def serve() -> None:
    """Run the ErrorFlow server (configured from ERRORFLOW_* env vars)."""
    from errorflow.app import main

    asyncio.run(main())


@cli.command()
@click.argument("error_text")
@click.option("--event-id", default=None, help="Correlation id for the submission.")
@click.option("--url", default=DEFAULT_URL, show_default=True, envvar="ERRORFLOW_URL")
@click.option("--timeout", default=60.0, show_default=True, type=float)
def submit(error_text: str, event_id: str | None, url: str, timeout: float) -> None:
    """Submit ERROR_TEXT for analysis and print the JSON response."""
    body: dict[str, str] = {"error": error_text}
    if event_id:
        body["eventId"] = event_id
    try:
        response = httpx.post(f"{url.rstrip('/')}{_API_PREFIX}/worker", json=body, timeout=timeout)
    except httpx.HTTPError as exc:
        raise click.ClickException(f"request failed: {exc}") from exc

    try:
        click.echo(json.dumps(response.json(), indent=2))
    except ValueError:
        click.echo(response.text)
    if not response.is_success:
        sys.exit(1)


@cli.command()
@click.option("--url", default=DEFAULT_URL, show_default=True, envvar="ERRORFLOW_URL")
@click.option("--limit", default=0, type=int, help="Stop after N events (0 = run until interrupted).")
def watch(url: str, limit: int) -> None:
    """Stream realtime pipeline events to the terminal."""
    seen = 0
    try:
        with httpx.stream("GET", f"{url.rstrip('/')}{_API_PREFIX}/events", timeout=None) as response:
            response.raise_for_status()
            for line in response.iter_lines():
                event = parse_data_line(line)
                if event is None:
                    continue
                click.echo(format_event(event))
                if event.get("type") == "connected":
                    continue
                seen += 1
                if limit and seen >= limit:
                    return
    except httpx.HTTPError as exc:
        raise click.ClickException(f"stream failed: {exc}") from exc
    except KeyboardInterrupt:
        return


def parse_data_line(line: str) -> dict[str, object] | None:
    """Decode one SSE line; comments and blank separators yield None."""
    if not line.startswith("data:"):
        return None
    try:
        decoded = json.loads(line[len("data:") :].strip())
    except json.JSONDecodeError:
        return None
    return decoded if isinstance(decoded, dict) else None


def format_event(event: dict[str, object]) -> str:
    kind = event.get("type", "?")
    status = event.get("status", "")
    label = f"[{kind}/{status}]" if status else f"[{kind}]"
    return f"{event.get('timestamp', '')} {label} {event.get('message', '')}".strip()
