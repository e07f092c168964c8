#!/usr/bin/env python3
"""Replay every completed match to rebuild stored player ratings."""

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
from db import create_db_engine, create_session_factory, ensure_schema, transaction
from domain.ratings.elo.calculator import INITIAL_ELO, K_FACTOR, PlayerEloCalculator, PlayerEloEvent
from log import setup_logging
from repositories.match_repository import apply_replayed_events, fetch_completed_match_results

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Ladder Elo jobs.",
)


@app.command("rebuild")
def rebuild_elo(
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Path to the app TOML config."),
    ] = DEFAULT_CONFIG_PATH,
    db_url: Annotated[
        str | None,
        typer.Option("--db-url", help="Database URL. Defaults to [database].url from the config."),
    ] = None,
    initial_elo: Annotated[int, typer.Option("--initial-elo")] = INITIAL_ELO,
    k_factor: Annotated[float, typer.Option("--k-factor")] = K_FACTOR,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Replay matches without writing ratings back."),
    ] = False,
) -> None:
    """Recompute every rating from completed matches in completion order."""
    if initial_elo < 0:
        raise typer.BadParameter("--initial-elo must be >= 0")
    if k_factor <= 0:
        raise typer.BadParameter("--k-factor must be greater than 0")

    config = load_app_config(config_path)
    setup_logging("rebuild_elo", config.logging.level)

    engine = create_db_engine(db_url or config.database.url)
    ensure_schema(engine)
    session_factory = create_session_factory(engine)

    with session_factory() as session:
        match_results = fetch_completed_match_results(session)
        total_matches = len(match_results)
        calculator = PlayerEloCalculator(initial_elo=initial_elo, k_factor=k_factor)

        events: list[PlayerEloEvent] = []
        for index, match_result in enumerate(match_results, start=1):
            events.extend(calculator.process_match(match_result))
            if index % 10_000 == 0:
                typer.echo(f"processed_matches={index}/{total_matches}")

        if dry_run:
            typer.echo(
                f"[dry-run] processed_matches={total_matches} "
                f"tracked_players={calculator.tracked_player_count()}"
            )
            for player_id, rating in sorted(calculator.ratings().items(), key=lambda item: -item[1])[:10]:
                typer.echo(f"  {player_id} elo={rating}")
            return

        with transaction(session):
            apply_replayed_events(session, events, calculator.ratings(), reset_elo=initial_elo)

        typer.echo(
            "completed "
            f"processed_matches={total_matches} "
            f"updated_events={len(events)} "
            f"tracked_players={calculator.tracked_player_count()}"
        )


if __name__ == "__main__":
    app()
