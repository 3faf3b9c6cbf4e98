"""CLI commands for wa-attendant."""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from wa_attendant import __brand__, __logo__, __version__

app = typer.Typer(
    name="wa-attendant",
    help=f"{__logo__} {__brand__} - WhatsApp auto-responder",
    no_args_is_help=True,
)

console = Console()


def _cli_fail(cause: str, fix: str | None = None, *, exit_code: int = 1) -> None:
    """Print a consistent CLI error block and exit."""
    console.print(f"[red]{cause}[/red]")
    if fix:
        console.print(f"[dim]Fix: {fix}[/dim]")
    raise typer.Exit(exit_code)


def _load_config():
    from wa_attendant.config.loader import load_config
    from wa_attendant.errors import ConfigError

    try:
        return load_config()
    except ConfigError as e:
        _cli_fail(e.cause, e.fix)


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}...{secret[-4:]}"


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__brand__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """wa-attendant - WhatsApp auto-responder."""
    pass


@app.command("version")
def version_cmd():
    """Show version."""
    console.print(f"{__logo__} {__brand__} v{__version__}")


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Debug logging"),
):
    """Start answering WhatsApp messages."""
    from wa_attendant.pipeline.gate import AdmissionGate
    from wa_attendant.pipeline.responder import MessagePipeline
    from wa_attendant.providers.gemini import GeminiClient
    from wa_attendant.session.bridge import BridgeTransport
    from wa_attendant.session.manager import SessionManager, SessionOutcome
    from wa_attendant.session.store import FileCredentialStore

    config = _load_config()
    _configure_logging("DEBUG" if verbose else config.log_level)

    store = FileCredentialStore(config.credentials_file)
    session = SessionManager(
        store,
        lambda: BridgeTransport(config.bridge.url, token=config.bridge.token),
        reconnect_delay=config.bridge.reconnect_delay,
    )
    backend = GeminiClient(
        api_key=config.gemini_key,
        model=config.backend.model,
        api_base=config.backend.api_base,
        timeout=config.backend.timeout,
        system_prompt=config.backend.system_prompt,
    )
    pipeline = MessagePipeline(
        session,
        backend,
        AdmissionGate(cooldown=config.pipeline.cooldown),
        history_prefix=config.pipeline.history_prefix,
        segment_limit=config.pipeline.segment_limit,
        min_delay=config.pipeline.min_delay,
        max_delay=config.pipeline.max_delay,
    )
    session.on_message(pipeline.handle)

    console.print(f"{__logo__} Starting {__brand__} via bridge {config.bridge.url}...")

    async def run_session() -> SessionOutcome:
        try:
            return await session.run()
        finally:
            await session.stop()

    try:
        outcome = asyncio.run(run_session())
    except KeyboardInterrupt:
        console.print("\nShutting down...")
        return

    if outcome is SessionOutcome.LOGGED_OUT:
        _cli_fail(
            "WhatsApp session logged out.",
            f"Run: {__brand__} logout, then start again and scan the QR code.",
        )


@app.command()
def status():
    """Show effective configuration and credential state."""
    config = _load_config()
    creds_file = config.credentials_file

    table = Table(title=f"{__brand__} status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Bridge URL", config.bridge.url)
    table.add_row("Bridge token", "set" if config.bridge.token else "-")
    table.add_row("Model", config.backend.model)
    table.add_row("Gemini key", _mask(config.gemini_key))
    table.add_row("Backend timeout", f"{config.backend.timeout:g}s")
    table.add_row("Sender cooldown", f"{config.pipeline.cooldown:g}s")
    table.add_row("Reply delay", f"{config.pipeline.min_delay:g}-{config.pipeline.max_delay:g}s")
    table.add_row("Segment limit", str(config.pipeline.segment_limit))
    if creds_file.exists():
        table.add_row("Credentials", f"[green]✓[/green] {creds_file}")
    else:
        table.add_row("Credentials", f"[yellow]none[/yellow] ({creds_file})")
    console.print(table)


@app.command()
def logout(
    auth_dir: str | None = typer.Option(
        None, "--auth-dir", help="Credential directory (default: configured auth_dir)"
    ),
):
    """Delete stored WhatsApp credentials so the next run asks for a QR login."""
    from wa_attendant.config.loader import load_storage_settings
    from wa_attendant.errors import ConfigError
    from wa_attendant.session.store import FileCredentialStore

    if auth_dir is not None:
        creds_file = Path(auth_dir).expanduser() / "creds.json"
    else:
        try:
            creds_file = load_storage_settings().credentials_file
        except ConfigError as e:
            _cli_fail(e.cause, e.fix)

    store = FileCredentialStore(creds_file)
    if store.clear():
        console.print(f"[green]✓[/green] Removed credentials in {store.path.parent}")
    else:
        console.print(f"[dim]No credentials found in {store.path.parent}[/dim]")


if __name__ == "__main__":
    app()
