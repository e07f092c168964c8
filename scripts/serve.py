#!/usr/bin/env python3
"""Run the ladder HTTP API."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
import uvicorn

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from api.app import create_app
from config import DEFAULT_CONFIG_PATH, load_app_config
from db import create_db_engine, ensure_schema
from log import setup_logging

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    help="Ladder API server.",
)


@app.command()
def serve(
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Path to the app TOML config."),
    ] = DEFAULT_CONFIG_PATH,
    host: Annotated[str | None, typer.Option("--host", help="Overrides [server].host.")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Overrides [server].port.")] = None,
    create_schema: Annotated[
        bool,
        typer.Option("--create-schema/--no-create-schema", help="Create missing tables before serving."),
    ] = True,
) -> None:
    """Load config, prepare the database and serve the API with uvicorn."""
    config = load_app_config(config_path)
    setup_logging("ladder-api", config.logging.level)

    engine = create_db_engine(config.database.url)
    if create_schema:
        ensure_schema(engine)

    api = create_app(config, engine=engine)
    try:
        uvicorn.run(
            api,
            host=host or config.server.host,
            port=port or config.server.port,
            log_config=None,
        )
    finally:
        engine.dispose()


if __name__ == "__main__":
    app()
