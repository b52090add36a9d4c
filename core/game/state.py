"""Round phase and outcome enumerations."""

from enum import Enum, auto


class Phase(Enum):
    """
    Round state machine states.

    Flow: BETTING → PLAYER_TURN → DEALER_TURN → FINISHED
    (PLAYER_TURN → FINISHED directly when the player busts)
    """

    # Waiting for the wager and the deal
    BETTING = auto()

    # Player hits or stands
    PLAYER_TURN = auto()

    # Dealer draws to 17
    DEALER_TURN = auto()

    # Outcome settled, round is read-only
    FINISHED = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


class Outcome(Enum):
    """Terminal result of a round."""

    PLAYER_WINS = "player_wins"
    DEALER_WINS = "dealer_wins"
    PUSH = "push"
    PLAYER_BLACKJACK = "player_blackjack"
    DEALER_BLACKJACK = "dealer_blackjack"

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


# Valid phase transitions
VALID_TRANSITIONS: dict[Phase, list[Phase]] = {
    Phase.BETTING: [Phase.PLAYER_TURN],
    Phase.PLAYER_TURN: [Phase.DEALER_TURN, Phase.FINISHED],  # FINISHED on player bust
    Phase.DEALER_TURN: [Phase.FINISHED],
    Phase.FINISHED: [],  # Terminal state
}

# The dealer's hole card stays face down in these phases
HIDDEN_DEALER_PHASES = frozenset({Phase.BETTING, Phase.PLAYER_TURN})


def is_valid_transition(from_phase: Phase, to_phase: Phase) -> bool:
    """
    Check if a phase transition is valid.

    Args:
        from_phase: Current phase
        to_phase: Desired phase

    Returns:
        True if the transition is allowed
    """
    return to_phase in VALID_TRANSITIONS.get(from_phase, [])
