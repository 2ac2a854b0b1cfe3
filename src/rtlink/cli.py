"""Typer-based CLI for watching a realtime feed."""

from __future__ import annotations

import asyncio
import json
from typing import Any, List, Optional

import typer

from rtlink.application import RealtimeService, SubscriptionOptions, build_realtime_service
from rtlink.core.config import RealtimeSettings, load_settings
from rtlink.domain.events import ConnectionStatusEvent, RealtimeEvent, TransportModeChanged
from rtlink.errors import ConfigurationError
from rtlink.logger import get_logger, setup_logger

logger = get_logger("cli")
app = typer.Typer(
    name="rtlink",
    help="Realtime connectivity: websocket push with automatic polling fallback",
    add_completion=False,
)


def parse_subscription(value: str) -> tuple[str, str, str]:
    """
    Parse ``ID=EVENT@ENDPOINT``.

    Raises:
        typer.BadParameter: If the value is malformed
    """
    sub_id, sep, rest = value.partition("=")
    event, at, endpoint = rest.partition("@")
    if not sep or not at or not sub_id or not event or not endpoint:
        raise typer.BadParameter(f"Expected ID=EVENT@ENDPOINT, got {value!r}")
    return sub_id.strip(), event.strip(), endpoint.strip()


def _load(config: Optional[str], url: Optional[str], alternate: Optional[str]) -> RealtimeSettings:
    try:
        return load_settings(config, primary_url=url, alternate_url=alternate)
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=2) from e


def _render(payload: Any) -> str:
    if isinstance(payload, (dict, list)):
        return json.dumps(payload, ensure_ascii=False)
    return str(payload)


@app.command()
def settings(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="JSON settings file"),
    url: Optional[str] = typer.Option(None, "--url", help="Primary websocket URL"),
) -> None:
    """Print the effective settings as JSON."""
    loaded = _load(config, url, None)
    typer.echo(json.dumps(loaded.model_dump(mode="json"), indent=2))


@app.command()
def watch(
    subscribe: List[str] = typer.Option([], "--subscribe", "-s", help="Subscription as ID=EVENT@ENDPOINT"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="JSON settings file"),
    url: Optional[str] = typer.Option(None, "--url", help="Primary websocket URL"),
    alternate: Optional[str] = typer.Option(None, "--alternate", help="Alternate websocket URL"),
    interval: Optional[float] = typer.Option(None, "--interval", help="Polling interval in seconds"),
    force_polling: bool = typer.Option(False, "--force-polling", help="Start in polling mode"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Subscribe to events and print every payload until interrupted."""
    setup_logger(log_level="DEBUG" if debug else "INFO")
    loaded = _load(config, url, alternate)
    subscriptions = [parse_subscription(item) for item in subscribe]
    if not subscriptions:
        typer.echo("No subscriptions given; only connection changes will be shown.")

    try:
        asyncio.run(_watch(loaded, subscriptions, interval, force_polling))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


async def _watch(
    settings: RealtimeSettings,
    subscriptions: list[tuple[str, str, str]],
    interval: Optional[float],
    force_polling: bool,
) -> None:
    service = build_realtime_service(settings)
    connection = service.connection

    def on_status(event: RealtimeEvent) -> None:
        if isinstance(event, ConnectionStatusEvent):
            detail = event.message or event.reason or ""
            typer.echo(f"[connection] {event.status.value} {detail}".rstrip())

    def on_mode(event: RealtimeEvent) -> None:
        if isinstance(event, TransportModeChanged):
            typer.echo(f"[mode] {event.previous.value} -> {event.current.value} ({event.reason})")

    connection.on("connection", on_status)
    service.on("mode", on_mode)

    for sub_id, event_name, endpoint in subscriptions:
        service.subscribe(
            sub_id,
            SubscriptionOptions(
                event=event_name,
                endpoint=endpoint,
                query_key=[sub_id, endpoint],
                interval=interval,
                callback=lambda payload, sub_id=sub_id: typer.echo(f"[{sub_id}] {_render(payload)}"),
                on_error=lambda error, sub_id=sub_id: typer.echo(f"[{sub_id}] error: {error}", err=True),
            ),
        )

    service.init()
    if force_polling:
        service.force_polling()

    try:
        await asyncio.Event().wait()
    finally:
        service.shutdown()
