"""Errors raised by the round engine.

Every action validates before it mutates, so catching one of these leaves
the round exactly as it was before the call.
"""


class RoundError(Exception):
    """Base class for all round engine errors."""


class InvalidBetError(RoundError, ValueError):
    """Bet amount is zero or negative."""

    def __init__(self, amount: int) -> None:
        super().__init__("Bet must be greater than 0")
        self.amount = amount


class InsufficientBalanceError(RoundError, ValueError):
    """Bet amount exceeds the available balance."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__("Insufficient balance")
        self.required = required
        self.available = available


class WrongPhaseError(RoundError):
    """Action is not permitted in the round's current phase."""

    def __init__(self, action: str, phase: object) -> None:
        super().__init__(f"Cannot {action} during {phase}")
        self.action = action
        self.phase = phase


class EmptyDeckError(RoundError, IndexError):
    """Draw attempted on a deck with no cards left."""

    def __init__(self) -> None:
        super().__init__("Cannot draw from empty deck")
