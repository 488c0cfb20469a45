# src/passtrack/exceptions.py
"""
Fehlerarten der Session- und Auswertungslogik.

Alle Fehler sind für den Aufrufer behandelbar: eine abgelehnte Operation
verändert den Zustand nicht.
"""


class PassTrackError(Exception):
    """Basisklasse aller Fehler dieses Pakets."""


class NotActiveError(PassTrackError):
    """Operation benötigt eine aktive Session, es läuft aber keine."""


class InvalidScoreError(PassTrackError, ValueError):
    """Bewertung liegt außerhalb des konfigurierten Bewertungssystems."""


class InvalidRosterError(PassTrackError, ValueError):
    """Leere oder ungültige Spielerauswahl (z.B. Spieler nicht im Team)."""


class EmptyLogError(PassTrackError):
    """Undo ohne protokollierten Pass."""


class PersistenceError(PassTrackError):
    """Fehler der Speicherschicht, wird unverändert weitergereicht."""


class InvalidQueryError(PassTrackError, ValueError):
    """Ungültige Parameter für eine Auswertung (z.B. Vergleich mit 5 Spielern)."""


class InvalidFieldError(PassTrackError, ValueError):
    """Unbekanntes optionales Datenfeld beim Sessionstart."""
