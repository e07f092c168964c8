#!/usr/bin/env python3
"""Show the top of the ladder with win/loss records."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import DEFAULT_CONFIG_PATH, load_app_config
from db import create_db_engine, create_session_factory
from domain.stats import summarize_record
from repositories.user_repository import list_users_by_elo

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    help="Query the ladder leaderboard.",
)


@app.command()
def show_leaderboard(
    top_n: Annotated[
        int,
        typer.Option("--top-n", help="Number of players to return."),
    ] = 20,
    include_unplayed: Annotated[
        bool,
        typer.Option("--include-unplayed", help="Also list players without any match."),
    ] = False,
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Path to the app TOML config."),
    ] = DEFAULT_CONFIG_PATH,
    db_url: Annotated[
        str | None,
        typer.Option("--db-url", help="Database URL. Defaults to [database].url from the config."),
    ] = None,
) -> None:
    """Print players by current Elo, highest first."""
    if top_n <= 0:
        raise typer.BadParameter("--top-n must be greater than 0")

    config = load_app_config(config_path)
    engine = create_db_engine(db_url or config.database.url)
    session_factory = create_session_factory(engine)

    with session_factory() as session:
        users = list_users_by_elo(session, limit=top_n, offset=0, only_with_matches=not include_unplayed)
        if not users:
            typer.echo("No players found.")
            return

        typer.echo(f"top_n={top_n} include_unplayed={include_unplayed}")
        for index, user in enumerate(users, start=1):
            record = summarize_record(user.matches, user.id)
            typer.echo(
                f"{index:2d}. {user.username:<20} "
                f"elo={user.elo:5d} wins={record.wins:3d} losses={record.losses:3d} "
                f"win_rate={record.win_rate:6.2f}%"
            )


if __name__ == "__main__":
    app()
