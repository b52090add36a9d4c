"""Round engine and state management."""

from core.game.events import GameEvent, EventType
from core.game.state import Phase, Outcome
from core.game.engine import Round, starting_balance

__all__ = [
    "GameEvent",
    "EventType",
    "Phase",
    "Outcome",
    "Round",
    "starting_balance",
]
