# src/passtrack/logic/undo.py

import logging
from typing import TYPE_CHECKING

from ..exceptions import EmptyLogError

if TYPE_CHECKING:
    from ..data.models import Rally, Session
    from .live_stats import LiveStatCache

logger = logging.getLogger(__name__)


class UndoController:
    """Nimmt den zuletzt erfassten Pass aus Protokoll und Live-Zählern zurück."""

    def undo_last(self, session: "Session", cache: "LiveStatCache") -> "Rally":
        """
        Entfernt den letzten Rally (höchste Rally-Nummer) und zieht genau dessen
        Beitrag von den Zählern des Spielers ab. Keine Neuberechnung.
        """
        if not session.rallies:
            raise EmptyLogError("Kein Pass zum Rückgängigmachen vorhanden.")

        last_rally = session.rallies[-1]
        # Zuerst die Zähler: schlägt reverse() fehl, bleibt das Protokoll unverändert
        cache.reverse(last_rally)
        session.rallies.pop()

        logger.debug("Rally %s von Spieler %s (Wertung %s) entfernt.",
                     last_rally.rally_number, last_rally.player_id, last_rally.pass_score)
        return last_rally
