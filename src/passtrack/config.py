# src/passtrack/config.py

import os
import sys
from dataclasses import dataclass
from typing import List

# Pfad zur SQLite-Datenbank
if getattr(sys, 'frozen', False):
    # App läuft als PyInstaller-Exe
    BASE_DIR = sys._MEIPASS
else:
    # App läuft im Entwicklungsmodus
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# Datenbankpfad: Wird im 'resources/db' Ordner gesucht, kann per Umgebungsvariable überschrieben werden
DB_FOLDER = os.path.join(os.path.dirname(os.path.dirname(BASE_DIR)), 'resources', 'db')
DB_PATH = os.environ.get('PASSTRACK_DB_PATH', os.path.join(DB_FOLDER, 'passtrack.db'))


# --- Bewertungssysteme ---

@dataclass(frozen=True)
class ScoringSystem:
    """Geschlossener Wertebereich für Pass-Bewertungen."""
    label: str
    min_score: int
    max_score: int

    def contains(self, score: int) -> bool:
        return self.min_score <= score <= self.max_score

    def scores(self) -> List[int]:
        """Alle möglichen Bewertungen, absteigend (wie auf den Buttons)."""
        return list(range(self.max_score, self.min_score - 1, -1))


FOUR_POINT = ScoringSystem("4-Point (3-2-1-0)", 0, 3)
FIVE_POINT = ScoringSystem("5-Point (4-3-2-1-0)", 0, 4)
SIX_POINT = ScoringSystem("6-Point (4-3-2-1-0--1)", -1, 4)

SCORING_SYSTEMS = {
    'four_point': FOUR_POINT,
    'five_point': FIVE_POINT,
    'six_point': SIX_POINT,
}
DEFAULT_SCORING_SYSTEM = FOUR_POINT

# Ab diesem Wert zählt ein Pass als "gut"
DEFAULT_GOOD_PASS_THRESHOLD = 2.0

# --- Optionale Datenfelder pro Pass ---

# Schlüssel wie beim Starten einer Session übergeben -> Attribut am Rally
OPTIONAL_FIELDS = {
    'zone': 'zone',
    'contactType': 'contact_type',
    'contactLocation': 'contact_location',
    'serveType': 'serve_type',
}

# Vokabular (nur Vorschläge, wird von der Engine nicht erzwungen)
VENUE_TYPES = ['indoor', 'beach']

ZONES_BY_VENUE = {
    'indoor': ["1", "6", "5"],
    'beach': ["Links", "Mitte", "Rechts"],
}

CONTACT_TYPES = ["Platform", "Hands"]

CONTACT_LOCATIONS = [
    f"{row}-{side}"
    for row in ("High", "Waist", "Low")
    for side in ("Left", "Mid", "Right")
]

SERVE_TYPES = ["Float", "Topspin", "Jump Float", "Jump Spin"]

# --- Auswertung ---

# Länge der relativen Zeitfenster in Tagen
DATE_WINDOW_DAYS = {
    'last_7_days': 7,
    'last_30_days': 30,
    'last_90_days': 90,
}

# Vergleichsmodus: erlaubte Anzahl Spieler
COMPARISON_MIN_PLAYERS = 2
COMPARISON_MAX_PLAYERS = 4

# Anzahl Sessions im Trendverlauf eines Spielers
TREND_SESSION_LIMIT = 10
