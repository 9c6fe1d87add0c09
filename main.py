# main.py
#
# Description: command-line entry point for the Cohere chat client. Loads
#              the configuration, runs onboarding for unset preferences,
#              sets up JSON logging and starts the interactive chat loop.
#

# --------------------------------------------------------------------------- #
# imports
# --------------------------------------------------------------------------- #
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from chat import ChatApplication
from config import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    ensure_directories,
    load_settings,
    missing_preferences,
    set_config_var,
)
from context import ContextInjector, IPInfoLocator
from core import ChatSession
from errors import InvalidModel, StorageError
from history_utils import DEFAULT_MODEL
from llm_client import CohereClient
from logging_config import setup_logging
from model_switch import resolve_model
from transcript_store import MessageStore, TranscriptFile

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Terminal chat client for the Cohere API.")

ONBOARDING_QUESTIONS = {
    "inject_location": "Would you like to enable location injection?",
    "inject_time": "Would you like to enable time/date injection?",
    "debug_mode": "Would you like to enable debug output?",
}


# --------------------------------------------------------------------------- #
# onboarding
# --------------------------------------------------------------------------- #
def onboard(settings: AppConfig, config_file: Path) -> AppConfig:
    """Ask for every unset preference and store the answers."""
    for key in missing_preferences(settings):
        if key == "api_key":
            value = typer.prompt("Enter your Cohere API key", hide_input=True).strip()
        else:
            value = typer.confirm(ONBOARDING_QUESTIONS[key], default=False)
        set_config_var(config_file, key, value)
        setattr(settings, key, value)
    return settings


# --------------------------------------------------------------------------- #
# entry point
# --------------------------------------------------------------------------- #
@app.command()
def main(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name or alias to start with."),
    fresh: bool = typer.Option(False, "--fresh", help="Start with an empty conversation."),
    debug: Optional[bool] = typer.Option(None, "--debug/--no-debug", help="Override debug mode for this run."),
    config_file: Path = typer.Option(DEFAULT_CONFIG_FILE, "--config", help="Path to the config file."),
) -> None:
    """
    Start an interactive chat session.
    """
    settings = load_settings(config_file)
    try:
        ensure_directories(settings)
        settings = onboard(settings, config_file)
        if settings.default_model is None or not settings.default_model.strip():
            settings.default_model = DEFAULT_MODEL
            set_config_var(config_file, "default_model", DEFAULT_MODEL)
    except StorageError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if debug is not None:
        settings.debug_mode = debug

    setup_logging(settings.debug_dir, debug=settings.debug)

    try:
        profile = resolve_model(model or settings.default_model)
    except InvalidModel as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    persistence = TranscriptFile(settings.transcript_file)
    try:
        if fresh or not settings.resume_transcript:
            store = MessageStore(persistence)
            store.reset()
        else:
            store = MessageStore.load(persistence)
        client = CohereClient(
            api_key=settings.api_key or "",
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )
        injector = ContextInjector(IPInfoLocator(settings.location_url, settings.location_timeout))
        session = ChatSession(settings, store, client, injector, profile, config_file=config_file)
    except StorageError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except ValueError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    logger.info("Session started", extra={"model": profile.name, "turns": len(store)})
    ChatApplication(session).run()


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
