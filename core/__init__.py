"""Core blackjack engine - 100% UI-agnostic."""

from core.cards import Card, Deck, Rank, Suit
from core.errors import (
    EmptyDeckError,
    InsufficientBalanceError,
    InvalidBetError,
    RoundError,
    WrongPhaseError,
)
from core.hand import Hand, is_blackjack, score

__all__ = [
    "Card",
    "Deck",
    "Rank",
    "Suit",
    "Hand",
    "score",
    "is_blackjack",
    "RoundError",
    "InvalidBetError",
    "InsufficientBalanceError",
    "WrongPhaseError",
    "EmptyDeckError",
]
