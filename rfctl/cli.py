"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer

from rfctl.core.errors import RfctlError
from rfctl.core.service import AccessoryService
from rfctl.transports.base import Transport
from rfctl.transports.ble_gatt import BLEGATTTransport
from rfctl.transports.log import LogTransport

app = typer.Typer(help="Timed RF/IR control of switches, lights and window coverings")

ConfigOption = typer.Option(None, "--config", help="Accessory YAML file")
BridgeOption = typer.Option(None, "--bridge", help="MAC of the BLE RF/IR bridge")
CharOption = typer.Option(None, "--char", help="Write characteristic UUID on the bridge")
DryRunOption = typer.Option(False, "--dry-run", help="Log payloads instead of transmitting them")


def _build_transport(bridge: str | None, char: str | None, dry_run: bool = False) -> Transport:
    if dry_run:
        return LogTransport()
    if bridge and char:
        return BLEGATTTransport(bridge, char)
    if bridge or char:
        raise typer.BadParameter("--bridge and --char must be given together")
    return LogTransport()


def _build_service(
    config: Path | None,
    bridge: str | None = None,
    char: str | None = None,
    dry_run: bool = False,
) -> AccessoryService:
    transport = _build_transport(bridge, char, dry_run)
    if isinstance(transport, LogTransport) and not dry_run:
        typer.echo("Warning: no bridge configured, payloads are only logged", err=True)
    service = AccessoryService(transport=transport, config_path=config)
    for warning in getattr(service, "warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _print_characteristics(service: AccessoryService, name: str) -> None:
    for kind, value in service.characteristics(name).items():
        typer.echo(f"  {kind.value}: {value}")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log controller decisions")) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("list")
def list_accessories(config: Path | None = ConfigOption) -> None:
    """List configured accessories and their characteristics."""
    try:
        service = _build_service(config)
        accessories = service.list_accessories()
        if not accessories:
            typer.echo("No accessories configured")
            raise typer.Exit(code=1)

        for accessory in accessories:
            typer.echo(f"{accessory.name}: {accessory.config.type}")
            _print_characteristics(service, accessory.name)
    except RfctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("keys")
def list_keys(name: str, config: Path | None = ConfigOption) -> None:
    """List the signal keys configured for an accessory."""
    try:
        service = _build_service(config)
        typer.echo(f"{name}: {', '.join(service.keys(name))}")
    except RfctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("send")
def send_key(
    name: str,
    key: str,
    config: Path | None = ConfigOption,
    bridge: str | None = BridgeOption,
    char: str | None = CharOption,
    dry_run: bool = DryRunOption,
) -> None:
    """Transmit one configured signal without touching accessory state."""
    try:
        service = _build_service(config, bridge, char, dry_run)

        async def _run() -> bytes:
            try:
                return await service.send_key(name, key)
            finally:
                await service.close()

        payload = asyncio.run(_run())
        typer.echo(f"Sent {key} to {name} payload={payload.hex()}")
    except RfctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set")
def set_characteristic(
    name: str,
    characteristic: str,
    value: str,
    config: Path | None = ConfigOption,
    bridge: str | None = BridgeOption,
    char: str | None = CharOption,
    dry_run: bool = DryRunOption,
    wait: bool = typer.Option(False, "--wait/--no-wait", help="Also wait for automatic follow-ups"),
    timeout: float | None = typer.Option(None, "--timeout", help="Give up waiting after N seconds"),
) -> None:
    """Set a characteristic and run the resulting signal sequence.

    With --wait, timers started by the change (auto-off, position tracking)
    are awaited too.
    """
    try:
        service = _build_service(config, bridge, char, dry_run)

        async def _run() -> None:
            try:
                task = service.set_value(name, characteristic, value)
                if task is not None:
                    await asyncio.wait_for(task, timeout)
                if wait:
                    await asyncio.wait_for(service.wait_idle(name), timeout)
            except asyncio.TimeoutError:
                typer.echo(f"Timed out after {timeout}s", err=True)
            finally:
                await service.close()

        asyncio.run(_run())
        typer.echo(f"Set {characteristic}={value} on {name}")
        _print_characteristics(service, name)
    except RfctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
