"""Shared builders for round engine tests."""

from random import Random

from hypothesis import strategies as st

from core.cards import Card, Deck, Rank, Suit
from core.game import Round
from core.hand import Hand


def make_hand(*cards: str) -> Hand:
    """Build a hand from card strings like 'AS', '10H'."""
    return Hand(cards=[Card.from_string(c) for c in cards])


def stacked_deck(*cards: str) -> Deck:
    """
    Build a deck that deals the given cards in the order listed.

    The opening deal takes them as player, dealer, player, dealer; later
    cards go to hits and the dealer's draws.
    """
    return Deck(cards=[Card.from_string(c) for c in reversed(cards)])


def dealt_round(*cards: str, balance: int = 1000, bet: int = 100) -> Round:
    """A round with a bet placed and the given cards dealt."""
    round_ = Round(balance, rng=Random(42))
    round_.place_bet(bet)
    round_.deal(stacked_deck(*cards))
    return round_


# Hypothesis strategies for property-based testing
@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def cards_strategy(draw, min_cards=0, max_cards=8):
    """Generate a list of distinct cards."""
    return draw(
        st.lists(card_strategy(), min_size=min_cards, max_size=max_cards, unique=True)
    )
