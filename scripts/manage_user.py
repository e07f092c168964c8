#!/usr/bin/env python3
"""Administrative changes to a single ladder account."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from sqlalchemy.engine import Engine

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import DEFAULT_CONFIG_PATH, load_app_config
from db import create_db_engine, create_session_factory, transaction
from domain.validation import MAX_ELO, is_valid_elo
from repositories.user_repository import get_user_by_username, set_user_elo, set_user_roles

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Ladder account administration.",
)

ConfigOption = Annotated[
    Path,
    typer.Option("--config", help="Path to the app TOML config."),
]
DbUrlOption = Annotated[
    str | None,
    typer.Option("--db-url", help="Database URL. Defaults to [database].url from the config."),
]


def _create_engine(config_path: Path, db_url: str | None) -> Engine:
    config = load_app_config(config_path)
    return create_db_engine(db_url or config.database.url)


@app.command("set-role")
def set_role(
    username: Annotated[str, typer.Argument(help="Username of the account to change.")],
    admin: Annotated[bool | None, typer.Option("--admin/--no-admin")] = None,
    tournament_organizer: Annotated[
        bool | None,
        typer.Option("--tournament-organizer/--no-tournament-organizer"),
    ] = None,
    blogger: Annotated[bool | None, typer.Option("--blogger/--no-blogger")] = None,
    config_path: ConfigOption = DEFAULT_CONFIG_PATH,
    db_url: DbUrlOption = None,
) -> None:
    """Grant or revoke role flags; flags left out are unchanged."""
    if admin is None and tournament_organizer is None and blogger is None:
        raise typer.BadParameter("pass at least one of --admin, --tournament-organizer, --blogger")

    engine = _create_engine(config_path, db_url)
    try:
        with create_session_factory(engine)() as session:
            user = get_user_by_username(session, username)
            if user is None:
                typer.echo(f"No user named '{username}'.", err=True)
                raise typer.Exit(code=1)
            with transaction(session):
                set_user_roles(
                    session,
                    user,
                    admin=admin,
                    tournament_organizer=tournament_organizer,
                    blogger=blogger,
                )
            typer.echo(
                f"{user.username}: admin={user.admin} "
                f"tournament_organizer={user.tournament_organizer} blogger={user.blogger}"
            )
    finally:
        engine.dispose()


@app.command("set-elo")
def set_elo(
    username: Annotated[str, typer.Argument(help="Username of the account to change.")],
    elo: Annotated[int, typer.Argument(help=f"New rating, 0..{MAX_ELO}.")],
    config_path: ConfigOption = DEFAULT_CONFIG_PATH,
    db_url: DbUrlOption = None,
) -> None:
    """Overwrite a player's rating without touching match history."""
    if not is_valid_elo(elo):
        raise typer.BadParameter(f"elo must be between 0 and {MAX_ELO}")

    engine = _create_engine(config_path, db_url)
    try:
        with create_session_factory(engine)() as session:
            user = get_user_by_username(session, username)
            if user is None:
                typer.echo(f"No user named '{username}'.", err=True)
                raise typer.Exit(code=1)
            previous = user.elo
            with transaction(session):
                set_user_elo(session, user, elo)
            typer.echo(f"{user.username}: elo {previous} -> {user.elo}")
    finally:
        engine.dispose()


if __name__ == "__main__":
    app()
