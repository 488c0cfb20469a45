# src/passtrack/main.py

import argparse
import datetime
import logging
import sys
from typing import List, Optional

import pandas as pd

from .config import DB_PATH, SCORING_SYSTEMS
from .data.db_manager import DBManager
from .exceptions import PassTrackError
from .logic.history_query import DateWindow, HistoryQueryEngine, SessionFilter, SortOption

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> datetime.datetime:
    return datetime.datetime.fromisoformat(value)


def _add_window_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--window", choices=[w.value for w in DateWindow])
    parser.add_argument("--from", dest="custom_start", type=_parse_date)
    parser.add_argument("--to", dest="custom_end", type=_parse_date)


def resolve_window_argument(parser: argparse.ArgumentParser, args) -> DateWindow:
    """--from/--to setzen den eigenen Zeitraum; mit einem relativen Fenster sind sie ungültig."""
    has_bounds = args.custom_start is not None or args.custom_end is not None
    if args.window is None:
        return DateWindow.CUSTOM if has_bounds else DateWindow.ALL_TIME
    window = DateWindow(args.window)
    if has_bounds and window is not DateWindow.CUSTOM:
        parser.error(f"--from/--to nur mit --window {DateWindow.CUSTOM.value}")
    return window


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="passtrack", description="Auswertung gespeicherter Pass-Sessions")
    parser.add_argument("--db", default=DB_PATH, help="Pfad zur SQLite-Datenbank")
    parser.add_argument("--scoring", choices=sorted(SCORING_SYSTEMS), default="four_point")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    sessions = sub.add_parser("sessions", help="Sessions filtern und sortieren")
    sessions.add_argument("--search", default="")
    sessions.add_argument("--team")
    sessions.add_argument("--player")
    sessions.add_argument("--min-average", type=float)
    sessions.add_argument("--max-average", type=float)
    sessions.add_argument("--min-passes", type=int, default=0)
    _add_window_arguments(sessions)
    sessions.add_argument("--sort", choices=[s.value for s in SortOption], default=SortOption.DATE_NEWEST.value)

    compare = sub.add_parser("compare", help="2-4 Spieler vergleichen")
    compare.add_argument("players", nargs="+")
    compare.add_argument("--team")
    _add_window_arguments(compare)

    team = sub.add_parser("team", help="Teamübersicht")
    team.add_argument("team_id")
    return parser


def run_sessions(engine: HistoryQueryEngine, args) -> pd.DataFrame:
    session_filter = SessionFilter(
        search_text=args.search,
        team_id=args.team,
        player_id=args.player,
        min_average=args.min_average,
        max_average=args.max_average,
        min_passes=args.min_passes,
        date_window=args.date_window,
        custom_start=args.custom_start,
        custom_end=args.custom_end,
        sort_by=SortOption(args.sort),
    )
    sessions = engine.filter_sessions(session_filter)
    return pd.DataFrame(
        [(s.start_time.strftime("%Y-%m-%d %H:%M"), s.team_name, s.rally_count,
          round(s.team_average, 2), round(s.good_pass_percentage, 1), s.duration_formatted)
         for s in sessions],
        columns=["Datum", "Team", "Pässe", "Schnitt", "Gut %", "Dauer"],
    )


def run_compare(engine: HistoryQueryEngine, args) -> pd.DataFrame:
    results = engine.compare_players(args.players, date_window=args.date_window, team_id=args.team,
                                     custom_start=args.custom_start, custom_end=args.custom_end)
    rows = []
    for result in results:
        row = {
            "Spieler": result.player_id,
            "Pässe": result.stats.count,
            "Schnitt": round(result.stats.average, 2),
            "Gut %": round(result.stats.good_pass_percentage, 1),
        }
        row.update({str(score): n for score, n in result.stats.distribution.items()})
        rows.append(row)
    return pd.DataFrame(rows)


def run_team(engine: HistoryQueryEngine, args) -> pd.DataFrame:
    summary = engine.team_summary(args.team_id)
    if summary.session_count == 0:
        return pd.DataFrame()
    return pd.DataFrame([{
        "Team": summary.team_id,
        "Sessions": summary.session_count,
        "Schnitt": round(summary.average, 2),
        "Pässe": summary.total_passes,
        "Letzte Session": summary.last_session.strftime("%Y-%m-%d %H:%M"),
    }])


def main(argv: Optional[List[str]] = None) -> int:
    """Einstiegspunkt der Kommandozeile."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command in ("sessions", "compare"):
        args.date_window = resolve_window_argument(parser, args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        db_manager = DBManager(db_path=args.db)
        db_manager.setup_database()
        engine = HistoryQueryEngine(db_manager, scoring_system=SCORING_SYSTEMS[args.scoring])

        if args.command == "sessions":
            table = run_sessions(engine, args)
        elif args.command == "compare":
            table = run_compare(engine, args)
        else:
            table = run_team(engine, args)
    except PassTrackError as e:
        logger.error("Fehler: %s", e)
        return 1

    if table.empty:
        print("Keine Sessions gefunden.")
    else:
        print(table.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
