# src/passtrack/data/db_manager.py

import datetime
import json
import logging
import os
import sqlite3
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import Player, Rally, Session, Team
from .repository import SessionRepository
from ..config import DB_PATH
from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)

Statement = Tuple[str, Sequence[Any]]


def _to_text(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_text(value: Optional[str]) -> Optional[datetime.datetime]:
    return datetime.datetime.fromisoformat(value) if value is not None else None


class DBManager(SessionRepository):
    """
    Verwaltet die Verbindung zur SQLite-Datenbank und führt alle
    datenbankspezifischen Operationen aus.
    """

    def __init__(self, db_path: str = DB_PATH):
        """Initialisiert den DBManager; die Verbindung wird pro Operation geöffnet."""
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._cursor: Optional[sqlite3.Cursor] = None

        # Stelle sicher, dass der Ordner existiert
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def connect(self):
        """Stellt die Verbindung zur Datenbank her."""
        try:
            self._connection = sqlite3.connect(self.db_path)
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._cursor = self._connection.cursor()
        except sqlite3.Error as e:
            logger.error("Datenbankverbindungsfehler: %s", e)
            raise PersistenceError(f"Datenbankverbindung fehlgeschlagen: {e}") from e

    def close(self):
        """Schließt die Verbindung zur Datenbank."""
        if self._connection:
            self._connection.close()
            self._connection = None
            self._cursor = None

    def execute_transaction(self, statements: Sequence[Statement]):
        """Führt mehrere Statements atomar aus (alles oder nichts)."""
        self.connect()
        try:
            for query, params in statements:
                self._cursor.execute(query, params)
            self._connection.commit()
        except sqlite3.Error as e:
            self._connection.rollback()
            logger.error("SQL-Fehler in Transaktion: %s", e)
            raise PersistenceError(f"Speichern fehlgeschlagen: {e}") from e
        finally:
            self.close()

    def execute_query_fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[Tuple]:
        """Führt einen Query aus und holt alle Ergebnisse."""
        self.connect()
        try:
            self._cursor.execute(query, params)
            return self._cursor.fetchall()
        except sqlite3.Error as e:
            logger.error("SQL-Fehler beim Fetchen: %s", e)
            raise PersistenceError(f"Laden fehlgeschlagen: {e}") from e
        finally:
            self.close()

    def setup_database(self):
        """Erstellt alle notwendigen Tabellen."""
        logger.info("Erstelle Datenbanktabellen in %s", self.db_path)

        # Booleans als INTEGER (0/1), Zeitstempel als ISO-Text
        queries = [
            """
            CREATE TABLE IF NOT EXISTS teams (
                team_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL,
                default_threshold REAL NOT NULL,
                venue_type TEXT NOT NULL
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS players (
                player_id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL,
                name TEXT NOT NULL,
                number INTEGER NOT NULL,
                position TEXT,
                is_active INTEGER NOT NULL,
                sort_order INTEGER NOT NULL,
                FOREIGN KEY (team_id) REFERENCES teams (team_id) ON DELETE CASCADE
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL,
                team_name TEXT NOT NULL,
                passer_ids TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT,
                track_zone INTEGER NOT NULL,
                track_contact_type INTEGER NOT NULL,
                track_contact_location INTEGER NOT NULL,
                track_serve_type INTEGER NOT NULL,
                good_pass_threshold REAL NOT NULL
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS rallies (
                rally_id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                player_id TEXT NOT NULL,
                rally_number INTEGER NOT NULL,
                pass_score INTEGER NOT NULL,
                zone TEXT,
                contact_type TEXT,
                contact_location TEXT,
                serve_type TEXT,
                timestamp TEXT NOT NULL,
                FOREIGN KEY (session_id) REFERENCES sessions (session_id) ON DELETE CASCADE
            );
            """
        ]
        self.execute_transaction([(query, ()) for query in queries])

    # --- SESSIONS ---

    def save(self, session: Session) -> None:
        """Speichert die Session und ersetzt ihre Rallies vollständig."""
        statements: List[Statement] = [
            (
                """
                INSERT OR REPLACE INTO sessions (session_id, team_id, team_name, passer_ids,
                    start_time, end_time, track_zone, track_contact_type,
                    track_contact_location, track_serve_type, good_pass_threshold)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.session_id, session.team_id, session.team_name,
                    json.dumps(list(session.passer_ids)),
                    _to_text(session.start_time), _to_text(session.end_time),
                    int(session.track_zone), int(session.track_contact_type),
                    int(session.track_contact_location), int(session.track_serve_type),
                    session.good_pass_threshold,
                ),
            ),
            ("DELETE FROM rallies WHERE session_id = ?", (session.session_id,)),
        ]
        for rally in session.rallies:
            statements.append((
                """
                INSERT INTO rallies (rally_id, session_id, player_id, rally_number, pass_score,
                    zone, contact_type, contact_location, serve_type, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rally.rally_id, session.session_id, rally.player_id, rally.rally_number,
                    rally.pass_score, rally.zone, rally.contact_type, rally.contact_location,
                    rally.serve_type, _to_text(rally.timestamp),
                ),
            ))
        self.execute_transaction(statements)
        logger.debug("Session %s mit %d Rallies gespeichert.", session.session_id, len(session.rallies))

    def fetch_all(self) -> List[Session]:
        """Holt alle Sessions inkl. Rallies, neueste zuerst."""
        session_rows = self.execute_query_fetch_all(
            """
            SELECT session_id, team_id, team_name, passer_ids, start_time, end_time,
                   track_zone, track_contact_type, track_contact_location, track_serve_type,
                   good_pass_threshold
            FROM sessions
            ORDER BY start_time DESC
            """
        )
        rally_rows = self.execute_query_fetch_all(
            """
            SELECT session_id, rally_id, player_id, rally_number, pass_score,
                   zone, contact_type, contact_location, serve_type, timestamp
            FROM rallies
            ORDER BY session_id, rally_number ASC
            """
        )

        rallies_by_session: Dict[str, List[Rally]] = {}
        for row in rally_rows:
            rallies_by_session.setdefault(row[0], []).append(Rally(
                rally_id=row[1],
                player_id=row[2],
                rally_number=row[3],
                pass_score=row[4],
                zone=row[5],
                contact_type=row[6],
                contact_location=row[7],
                serve_type=row[8],
                timestamp=_from_text(row[9]),
            ))

        sessions = []
        for row in session_rows:
            end_time = _from_text(row[5])
            rallies = rallies_by_session.get(row[0], [])
            sessions.append(Session(
                session_id=row[0],
                team_id=row[1],
                team_name=row[2],
                passer_ids=tuple(json.loads(row[3])),
                start_time=_from_text(row[4]),
                end_time=end_time,
                # Abgeschlossene Sessions sind unveränderlich
                rallies=tuple(rallies) if end_time is not None else rallies,
                track_zone=bool(row[6]),
                track_contact_type=bool(row[7]),
                track_contact_location=bool(row[8]),
                track_serve_type=bool(row[9]),
                good_pass_threshold=row[10],
            ))
        return sessions

    def delete(self, session: Session) -> None:
        """Löscht eine Session; ihre Rallies werden in derselben Transaktion entfernt."""
        self.execute_transaction([
            ("DELETE FROM rallies WHERE session_id = ?", (session.session_id,)),
            ("DELETE FROM sessions WHERE session_id = ?", (session.session_id,)),
        ])
        logger.info("Session %s gelöscht.", session.session_id)

    # --- TEAMS ---

    def save_team(self, team: Team) -> None:
        """Fügt ein Team samt Spielern ein bzw. aktualisiert es."""
        statements: List[Statement] = [
            (
                """
                INSERT OR REPLACE INTO teams (team_id, name, created_at, default_threshold, venue_type)
                VALUES (?, ?, ?, ?, ?)
                """,
                (team.team_id, team.name, _to_text(team.created_at),
                 team.default_threshold, team.venue_type),
            ),
            ("DELETE FROM players WHERE team_id = ?", (team.team_id,)),
        ]
        for index, player in enumerate(team.players):
            statements.append((
                """
                INSERT OR REPLACE INTO players (player_id, team_id, name, number, position, is_active, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (player.player_id, team.team_id, player.name, player.number,
                 player.position, int(player.is_active), index),
            ))
        self.execute_transaction(statements)

    def fetch_team(self, team_id: str) -> Optional[Team]:
        """Holt ein Team mit allen Spielern (in Kader-Reihenfolge)."""
        team_rows = self.execute_query_fetch_all(
            "SELECT team_id, name, created_at, default_threshold, venue_type FROM teams WHERE team_id = ?",
            (team_id,),
        )
        if not team_rows:
            return None

        row = team_rows[0]
        player_rows = self.execute_query_fetch_all(
            """
            SELECT player_id, name, number, position, is_active
            FROM players WHERE team_id = ? ORDER BY sort_order ASC
            """,
            (team_id,),
        )
        players = [
            Player(player_id=p[0], name=p[1], number=p[2], position=p[3], is_active=bool(p[4]))
            for p in player_rows
        ]
        return Team(
            team_id=row[0],
            name=row[1],
            created_at=_from_text(row[2]),
            default_threshold=row[3],
            venue_type=row[4],
            players=players,
        )
