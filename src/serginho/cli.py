"""
Serginho CLI — serginho serve | ask | classify
"""
import asyncio
import json
import sys

import click

from serginho.config.settings import load_settings
from serginho.core.exceptions import SerginhoError
from serginho.core.factories import create_orchestrator
from serginho.core.structured_logger import configure_logging
from serginho.core.types import DEFAULT_SESSION_ID, RequestMode, RequestOptions
from serginho.routing.intent_classifier import PatternIntentClassifier, tier_for_intent

_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file (environment variables still override it)",
)


@click.group()
@click.version_option(package_name="serginho")
def cli() -> None:
    """Serginho — tiered model orchestration."""
    pass


@cli.command()
@_config_option
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", type=int, default=None, help="Bind port (default from settings)")
def serve(config_path: str | None, host: str | None, port: int | None) -> None:
    """Run the HTTP interface."""
    import uvicorn

    from serginho.interfaces.web.server import create_app

    settings = load_settings(config_path)
    configure_logging(settings.logging)
    try:
        app = create_app(settings=settings)
    except SerginhoError as e:
        click.echo(f"Startup failed: {e.message}", err=True)
        sys.exit(1)

    uvicorn.run(
        app,
        host=host or settings.web.host,
        port=port or settings.web.port,
        log_level=settings.logging.level.lower(),
    )


@cli.command()
@_config_option
@click.argument("prompt")
@click.option("--session", "session_id", default=DEFAULT_SESSION_ID, show_default=True, help="Session id")
@click.option("--hybrid", is_flag=True, help="Race the tiered providers instead of routing")
def ask(config_path: str | None, prompt: str, session_id: str, hybrid: bool) -> None:
    """Send one PROMPT through the orchestrator and print the JSON result."""
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    options = RequestOptions(
        session_id=session_id,
        mode=RequestMode.HYBRID if hybrid else RequestMode.INTELLIGENT,
    )

    async def _run() -> dict:
        orchestrator = create_orchestrator(settings)
        try:
            result = await orchestrator.handle_request(prompt, options)
        finally:
            await orchestrator.close()
        return result.to_dict()

    try:
        body = asyncio.run(_run())
    except SerginhoError as e:
        click.echo(json.dumps({"error": e.message}), err=True)
        sys.exit(1)
    click.echo(json.dumps(body, ensure_ascii=False, indent=2))


@cli.command()
@click.argument("prompt")
def classify(prompt: str) -> None:
    """Show the intent and tier PROMPT would be routed to."""
    intent = PatternIntentClassifier().classify(prompt)
    click.echo(f"intent={intent} tier={tier_for_intent(intent)}")


if __name__ == "__main__":
    cli()
