"""Blackjack round engine with state machine."""

from random import Random
from typing import Any, Callable

from transitions import Machine

from core.cards import Card, Deck
from core.errors import (
    EmptyDeckError,
    InsufficientBalanceError,
    InvalidBetError,
    WrongPhaseError,
)
from core.game.events import EventEmitter, EventType, GameEvent
from core.game.resolution import dealer_should_hit, evaluate_hands, payout
from core.game.state import HIDDEN_DEALER_PHASES, Outcome, Phase
from core.hand import Hand, score

# Cards needed for the opening deal
INITIAL_DEAL_SIZE = 4

_OUTCOME_EVENTS = {
    Outcome.PLAYER_WINS: EventType.PLAYER_WINS,
    Outcome.PLAYER_BLACKJACK: EventType.PLAYER_WINS,
    Outcome.DEALER_WINS: EventType.PLAYER_LOSES,
    Outcome.DEALER_BLACKJACK: EventType.PLAYER_LOSES,
    Outcome.PUSH: EventType.PUSH,
}


def starting_balance(previous: int | None, default_balance: int) -> int:
    """
    Pick the balance a new round starts with.

    A positive balance carried over from the last finished round is kept;
    a missing or exhausted one is reset to the default.
    """
    if previous is None or previous <= 0:
        return default_balance
    return previous


class Round:
    """
    A single round of blackjack driven by a state machine.

    This is the core game logic, completely UI-agnostic. Actions either
    apply fully or raise a RoundError before touching any state; progress
    is reported through events.
    """

    # State machine states
    STATES = [p.name.lower() for p in Phase]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "start_player_turn", "source": "betting", "dest": "player_turn"},
        {"trigger": "start_dealer_turn", "source": "player_turn", "dest": "dealer_turn"},
        {"trigger": "player_busts", "source": "player_turn", "dest": "finished"},
        {"trigger": "finish", "source": "dealer_turn", "dest": "finished"},
    ]

    def __init__(self, balance: int, rng: Random | None = None) -> None:
        """
        Initialize a new round in the betting phase.

        Args:
            balance: Starting balance (carried over by the caller)
            rng: Random number generator used to shuffle the deck
        """
        if balance < 0:
            raise ValueError("balance must be non-negative")

        self._rng = rng or Random()
        self._balance = balance
        self._current_bet = 0
        self._outcome: Outcome | None = None

        self.deck = Deck(cards=[], rng=self._rng)
        self.player_hand = Hand()
        self.dealer_hand = Hand()
        self.events = EventEmitter()

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="betting",
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def phase(self) -> Phase:
        """Get current phase as enum."""
        return Phase[self._machine_state.upper()]  # type: ignore

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def current_bet(self) -> int:
        return self._current_bet

    def subscribe(
        self,
        handler: Callable[[GameEvent], None],
        event_type: EventType | None = None,
    ) -> None:
        """Subscribe to round events."""
        self.events.subscribe(handler, event_type)

    def _reject(self, action: str) -> WrongPhaseError:
        self.events.emit_new(
            EventType.INVALID_ACTION,
            message=f"Cannot {action} in current phase",
            phase=self.phase.name,
        )
        return WrongPhaseError(action, self.phase)

    def place_bet(self, amount: int) -> None:
        """
        Put a wager at risk for this round.

        The amount leaves the balance immediately; it comes back through the
        payout if the round is won or pushed.

        Raises:
            WrongPhaseError: Not betting, or a bet is already placed
            InvalidBetError: Amount is not a positive whole number
            InsufficientBalanceError: Amount exceeds the balance
        """
        if self.phase != Phase.BETTING or self._current_bet > 0:
            raise self._reject("place bet")

        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            self.events.emit_new(
                EventType.INVALID_ACTION,
                message="Bet must be greater than 0",
                amount=amount,
            )
            raise InvalidBetError(amount)

        if amount > self._balance:
            self.events.emit_new(
                EventType.INSUFFICIENT_FUNDS,
                required=amount,
                available=self._balance,
            )
            raise InsufficientBalanceError(amount, self._balance)

        self._balance -= amount
        self._current_bet = amount
        self.events.emit_new(EventType.BET_PLACED, amount=amount, balance=self._balance)

    def deal(self, deck: Deck | None = None) -> None:
        """
        Deal the opening cards: player, dealer, player, dealer (face down).

        Args:
            deck: Prepared deck to deal from, drawn from the end. A fresh
                shuffled deck is built when omitted.

        Raises:
            WrongPhaseError: Not betting, or no bet placed
            EmptyDeckError: Prepared deck is too short for the opening deal
            ValueError: Prepared deck holds the same card twice
        """
        if self.phase != Phase.BETTING or self._current_bet <= 0:
            raise self._reject("deal")

        if deck is None:
            deck = Deck.new_shuffled(self._rng)
            self.events.emit_new(EventType.SHUFFLED)
        elif len(deck) < INITIAL_DEAL_SIZE:
            raise EmptyDeckError()
        elif len(set(deck)) != len(deck):
            raise ValueError("duplicate card in deck")

        self.deck = deck
        self.player_hand = Hand()
        self.dealer_hand = Hand()

        self._deal_card_to_hand(self.player_hand)
        self._deal_card_to_hand(self.dealer_hand)
        self._deal_card_to_hand(self.player_hand)
        self._deal_card_to_hand(self.dealer_hand, face_up=False)

        self.start_player_turn()
        self.events.emit_new(
            EventType.ROUND_STARTED,
            player_value=self.player_hand.value,
            dealer_showing=self.visible_dealer_score,
        )

        # A natural still waits for the player to stand
        if self.player_hand.is_blackjack:
            self.events.emit_new(EventType.PLAYER_BLACKJACK)

    def _deal_card_to_hand(self, hand: Hand, face_up: bool = True) -> Card:
        """Deal a card to a hand."""
        card = self.deck.draw()
        hand.add_card(card)
        is_dealer = hand is self.dealer_hand
        self.events.emit_new(
            EventType.CARD_DEALT,
            card=str(card) if face_up else "??",
            hand="dealer" if is_dealer else "player",
            hand_value=hand.value if face_up or not is_dealer else None,
        )
        return card

    def hit(self) -> None:
        """Player takes another card; a bust ends the round at once."""
        if self.phase != Phase.PLAYER_TURN:
            raise self._reject("hit")

        self._deal_card_to_hand(self.player_hand)
        self.events.emit_new(EventType.PLAYER_HIT, hand_value=self.player_hand.value)

        if self.player_hand.is_busted:
            self.events.emit_new(EventType.PLAYER_BUSTS, hand_value=self.player_hand.value)
            self.player_busts()
            self._settle(Outcome.DEALER_WINS)

    def stand(self) -> None:
        """Player stands; the dealer plays out and the round is settled."""
        if self.phase != Phase.PLAYER_TURN:
            raise self._reject("stand")

        if not self._dealer_can_finish():
            raise EmptyDeckError()

        self.events.emit_new(EventType.PLAYER_STAND, hand_value=self.player_hand.value)
        self.start_dealer_turn()
        self._play_dealer()

        self.finish()
        self._settle(evaluate_hands(self.player_hand, self.dealer_hand))

    def _dealer_can_finish(self) -> bool:
        """Check the deck holds every card the dealer will draw."""
        hand = Hand(cards=list(self.dealer_hand.cards))
        upcoming = self.deck.cards
        while dealer_should_hit(hand):
            if not upcoming:
                return False
            hand.add_card(upcoming.pop())
        return True

    def _play_dealer(self) -> None:
        """Dealer draws until reaching 17 or more."""
        if len(self.dealer_hand) >= 2:
            self.events.emit_new(
                EventType.DEALER_REVEALS,
                card=str(self.dealer_hand.cards[1]),
                hand_value=self.dealer_hand.value,
            )

        while dealer_should_hit(self.dealer_hand):
            self._deal_card_to_hand(self.dealer_hand)
            self.events.emit_new(EventType.DEALER_HITS, hand_value=self.dealer_hand.value)

        if self.dealer_hand.is_busted:
            self.events.emit_new(EventType.DEALER_BUSTS, hand_value=self.dealer_hand.value)
        else:
            self.events.emit_new(EventType.DEALER_STANDS, hand_value=self.dealer_hand.value)

    def _settle(self, outcome: Outcome) -> None:
        """Record the outcome and pay it out. Called once per round."""
        amount = payout(outcome, self._current_bet)
        self._outcome = outcome
        self._balance += amount

        if outcome == Outcome.DEALER_BLACKJACK:
            self.events.emit_new(EventType.DEALER_BLACKJACK)
        self.events.emit_new(_OUTCOME_EVENTS[outcome], outcome=outcome.value, amount=amount)
        self.events.emit_new(
            EventType.ROUND_ENDED,
            outcome=outcome.value,
            payout=amount,
            balance=self._balance,
        )

    def next_round(self, default_balance: int, rng: Random | None = None) -> "Round":
        """Start a new round carrying over this round's balance."""
        if self.phase != Phase.FINISHED:
            raise self._reject("start next round")
        return Round(starting_balance(self._balance, default_balance), rng=rng or self._rng)

    @property
    def player_score(self) -> int:
        return self.player_hand.value

    @property
    def dealer_score(self) -> int:
        return self.dealer_hand.value

    @property
    def is_dealer_card_hidden(self) -> bool:
        """Check if the dealer's second card is still face down."""
        return self.phase in HIDDEN_DEALER_PHASES

    @property
    def visible_dealer_score(self) -> int:
        """Score of the dealer cards the player can see."""
        if self.is_dealer_card_hidden:
            return score(self.dealer_hand.cards[:1])
        return self.dealer_score

    @property
    def cards_remaining(self) -> int:
        return self.deck.cards_remaining

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        return self.phase == Phase.PLAYER_TURN

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        return self.phase == Phase.PLAYER_TURN

    def to_dict(self) -> dict[str, Any]:
        """Serialize round state to plain JSON-safe data."""
        return {
            "phase": self._machine_state,
            "outcome": self._outcome.value if self._outcome else None,
            "balance": self._balance,
            "current_bet": self._current_bet,
            "deck": [c.to_dict() for c in self.deck],
            "player_hand": [c.to_dict() for c in self.player_hand],
            "dealer_hand": [c.to_dict() for c in self.dealer_hand],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], rng: Random | None = None) -> "Round":
        """
        Restore a round from data produced by to_dict.

        Raises:
            ValueError: The data breaks a round invariant
        """
        phase = Phase[data["phase"].upper()]
        outcome = Outcome(data["outcome"]) if data.get("outcome") else None
        balance = data["balance"]
        current_bet = data["current_bet"]

        if balance < 0:
            raise ValueError("balance must be non-negative")
        if current_bet < 0:
            raise ValueError("current_bet must be non-negative")
        if phase != Phase.BETTING and current_bet <= 0:
            raise ValueError("current_bet must be greater than 0 when round is in progress")
        if (outcome is None) == (phase == Phase.FINISHED):
            raise ValueError("outcome must be set exactly when the round is finished")

        round_ = cls(balance, rng=rng)
        round_._current_bet = current_bet
        round_._outcome = outcome
        round_.deck = Deck(cards=[Card.from_dict(c) for c in data["deck"]], rng=round_._rng)
        round_.player_hand = Hand(cards=[Card.from_dict(c) for c in data["player_hand"]])
        round_.dealer_hand = Hand(cards=[Card.from_dict(c) for c in data["dealer_hand"]])

        all_cards = [*round_.deck, *round_.player_hand, *round_.dealer_hand]
        if len(set(all_cards)) != len(all_cards):
            raise ValueError("duplicate card in round")

        # Restore state machine state
        round_._machine_state = phase.name.lower()
        return round_

    def __repr__(self) -> str:
        return (
            f"Round(phase={self.phase.name}, balance={self._balance}, "
            f"bet={self._current_bet}, outcome={self._outcome})"
        )
