"""Pytest fixtures for blackjack round engine tests."""

import pytest
from random import Random

from core.cards import Deck
from core.game import Round
from core.hand import Hand
from tests.helpers import make_hand


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def deck(rng):
    """A shuffled deck."""
    return Deck.new_shuffled(rng=rng)


@pytest.fixture
def empty_hand():
    """An empty hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return make_hand("AS", "KH")


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return make_hand("AS", "6H")


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return make_hand("10S", "6H")


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return make_hand("10S", "6H", "KC")


@pytest.fixture
def new_round(rng):
    """A round in the betting phase with the default balance."""
    return Round(1000, rng=rng)


@pytest.fixture
def betting_round(new_round):
    """A round with a 100 bet placed, not yet dealt."""
    new_round.place_bet(100)
    return new_round
