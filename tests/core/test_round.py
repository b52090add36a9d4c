"""Tests for the round state machine."""

import pytest

from core.errors import (
    EmptyDeckError,
    InsufficientBalanceError,
    InvalidBetError,
    WrongPhaseError,
)
from core.game import Outcome, Phase, Round, starting_balance
from core.game.events import EventType
from core.game.state import is_valid_transition
from tests.helpers import dealt_round, stacked_deck


class TestPlaceBet:
    """Tests for placing a wager."""

    def test_bet_deducted_immediately(self, new_round):
        new_round.place_bet(100)
        assert new_round.balance == 900
        assert new_round.current_bet == 100
        assert new_round.phase == Phase.BETTING

    def test_bet_entire_balance(self, new_round):
        new_round.place_bet(1000)
        assert new_round.balance == 0
        assert new_round.current_bet == 1000

    @pytest.mark.parametrize("amount", [0, -1, -100])
    def test_non_positive_bet_rejected(self, new_round, amount):
        with pytest.raises(InvalidBetError):
            new_round.place_bet(amount)
        assert new_round.balance == 1000
        assert new_round.current_bet == 0

    def test_bet_over_balance_rejected(self, new_round):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            new_round.place_bet(1001)
        assert exc_info.value.required == 1001
        assert exc_info.value.available == 1000
        assert new_round.balance == 1000
        assert new_round.current_bet == 0

    @pytest.mark.parametrize("amount", [1.5, 100.0, True, "100"])
    def test_non_integer_bet_rejected(self, new_round, amount):
        with pytest.raises(InvalidBetError):
            new_round.place_bet(amount)
        assert new_round.balance == 1000
        assert new_round.current_bet == 0

    def test_bet_errors_are_value_errors(self, new_round):
        with pytest.raises(ValueError):
            new_round.place_bet(0)

    def test_second_bet_rejected(self, betting_round):
        with pytest.raises(WrongPhaseError):
            betting_round.place_bet(50)
        assert betting_round.balance == 900
        assert betting_round.current_bet == 100

    def test_bet_after_deal_rejected(self, betting_round):
        betting_round.deal()
        with pytest.raises(WrongPhaseError):
            betting_round.place_bet(50)
        assert betting_round.balance == 900
        assert betting_round.current_bet == 100

    def test_zero_balance_round_cannot_bet(self):
        round_ = Round(0)
        with pytest.raises(InsufficientBalanceError):
            round_.place_bet(1)

    def test_negative_starting_balance_rejected(self):
        with pytest.raises(ValueError):
            Round(-1)


class TestDeal:
    """Tests for the opening deal."""

    def test_deals_two_cards_each(self, betting_round):
        betting_round.deal()
        assert len(betting_round.player_hand) == 2
        assert len(betting_round.dealer_hand) == 2
        assert betting_round.cards_remaining == 48
        assert betting_round.phase == Phase.PLAYER_TURN
        assert betting_round.outcome is None

    def test_dealt_cards_are_unique(self, betting_round):
        betting_round.deal()
        cards = [*betting_round.deck, *betting_round.player_hand, *betting_round.dealer_hand]
        assert len(cards) == 52
        assert len(set(cards)) == 52

    def test_deal_order_alternates(self):
        round_ = dealt_round("2S", "3S", "4S", "5S")
        assert [str(c) for c in round_.player_hand] == ["2♠", "4♠"]
        assert [str(c) for c in round_.dealer_hand] == ["3♠", "5♠"]

    def test_deal_without_bet_rejected(self, new_round):
        with pytest.raises(WrongPhaseError):
            new_round.deal()
        assert new_round.phase == Phase.BETTING
        assert len(new_round.player_hand) == 0
        assert new_round.cards_remaining == 0

    def test_deal_twice_rejected(self, betting_round):
        betting_round.deal()
        with pytest.raises(WrongPhaseError):
            betting_round.deal()
        assert betting_round.cards_remaining == 48

    def test_short_deck_rejected_before_dealing(self, betting_round):
        with pytest.raises(EmptyDeckError):
            betting_round.deal(stacked_deck("2S", "3S", "4S"))
        assert betting_round.phase == Phase.BETTING
        assert len(betting_round.player_hand) == 0

    def test_deck_with_duplicates_rejected(self, betting_round):
        with pytest.raises(ValueError):
            betting_round.deal(stacked_deck("2S", "3S", "2S", "4S"))
        assert betting_round.phase == Phase.BETTING
        assert len(betting_round.deck) == 0

    def test_natural_waits_for_stand(self):
        round_ = dealt_round("AS", "10H", "KS", "9C")
        assert round_.player_hand.is_blackjack
        assert round_.phase == Phase.PLAYER_TURN
        assert round_.outcome is None


class TestDealerVisibility:
    """Tests for the hidden hole card."""

    def test_hidden_while_betting(self, new_round):
        assert new_round.is_dealer_card_hidden
        assert new_round.visible_dealer_score == 0

    def test_hidden_during_player_turn(self):
        round_ = dealt_round("10S", "AH", "QS", "6C")
        assert round_.is_dealer_card_hidden
        assert round_.visible_dealer_score == 11
        assert round_.dealer_score == 17

    def test_revealed_during_dealer_turn(self):
        round_ = dealt_round("10S", "10H", "9S", "6C", "2D")
        seen = []

        def on_reveal(event):
            seen.append((round_.phase, round_.is_dealer_card_hidden, round_.visible_dealer_score))

        round_.subscribe(on_reveal, EventType.DEALER_REVEALS)
        round_.stand()
        assert seen == [(Phase.DEALER_TURN, False, 16)]

    def test_revealed_when_finished(self):
        round_ = dealt_round("10S", "10H", "9S", "7C")
        round_.stand()
        assert not round_.is_dealer_card_hidden
        assert round_.visible_dealer_score == round_.dealer_score == 17


class TestHit:
    """Tests for the player drawing cards."""

    def test_hit_without_bust_stays_in_player_turn(self):
        round_ = dealt_round("5S", "10H", "6S", "7C", "2D")
        round_.hit()
        assert round_.player_score == 13
        assert round_.phase == Phase.PLAYER_TURN
        assert round_.cards_remaining == 0

    def test_bust_finishes_round(self):
        round_ = dealt_round("10S", "10H", "QS", "7C", "5D", "2C")
        assert round_.player_score == 20
        round_.hit()
        assert round_.player_score == 25
        assert round_.phase == Phase.FINISHED
        assert round_.outcome == Outcome.DEALER_WINS
        assert round_.balance == 900
        assert len(round_.dealer_hand) == 2
        assert round_.cards_remaining == 1

    def test_no_draw_after_bust(self):
        round_ = dealt_round("10S", "10H", "QS", "7C", "5D", "2C")
        round_.hit()
        with pytest.raises(WrongPhaseError):
            round_.hit()
        with pytest.raises(WrongPhaseError):
            round_.stand()
        assert round_.cards_remaining == 1
        assert round_.balance == 900

    def test_hit_before_deal_rejected(self, betting_round):
        with pytest.raises(WrongPhaseError):
            betting_round.hit()

    def test_hit_on_empty_deck_leaves_round_unchanged(self):
        round_ = dealt_round("5S", "10H", "6S", "7C")
        with pytest.raises(EmptyDeckError):
            round_.hit()
        assert len(round_.player_hand) == 2
        assert round_.phase == Phase.PLAYER_TURN

    def test_stand_on_short_deck_leaves_round_unchanged(self):
        # Dealer holds 16 and must draw, but the deck is empty
        round_ = dealt_round("10S", "10H", "9S", "6C")
        with pytest.raises(EmptyDeckError):
            round_.stand()

        assert round_.phase == Phase.PLAYER_TURN
        assert round_.outcome is None
        assert round_.can_stand
        assert len(round_.dealer_hand) == 2
        assert round_.balance == 900
        assert EventType.PLAYER_STAND not in [e.event_type for e in round_.events.history]

    def test_stand_needing_no_draws_on_empty_deck(self):
        round_ = dealt_round("10S", "10H", "9S", "7C")
        round_.stand()
        assert round_.outcome == Outcome.PLAYER_WINS

    def test_stand_checks_every_dealer_draw(self):
        # 10+2 draws a 3 to 15 and still needs another card
        round_ = dealt_round("10S", "10H", "9S", "2C", "3D")
        with pytest.raises(EmptyDeckError):
            round_.stand()
        assert round_.phase == Phase.PLAYER_TURN
        assert round_.cards_remaining == 1

    def test_hit_to_21_is_not_blackjack(self):
        round_ = dealt_round("5S", "10H", "6S", "8C", "QD")
        round_.hit()
        assert round_.player_score == 21
        round_.stand()
        assert round_.outcome == Outcome.PLAYER_WINS
        assert round_.balance == 1100


class TestStand:
    """Tests for the dealer turn and settlement."""

    def test_dealer_draws_on_16(self):
        round_ = dealt_round("10S", "10H", "9S", "6C", "2D", "KD")
        round_.stand()
        assert len(round_.dealer_hand) == 3
        assert round_.dealer_score == 18
        assert round_.outcome == Outcome.PLAYER_WINS

    def test_dealer_keeps_drawing_below_17(self):
        round_ = dealt_round("10S", "2H", "9S", "3C", "4D", "2C", "5S", "KD")
        round_.stand()
        assert [str(c) for c in round_.dealer_hand] == ["2♥", "3♣", "4♦", "2♣", "5♠", "K♦"]
        assert round_.dealer_score == 26
        assert round_.outcome == Outcome.PLAYER_WINS

    def test_dealer_stops_at_17(self):
        round_ = dealt_round("10S", "10H", "9S", "7C", "2D")
        round_.stand()
        assert len(round_.dealer_hand) == 2
        assert round_.cards_remaining == 1

    def test_dealer_stands_on_soft_17(self):
        round_ = dealt_round("10S", "AH", "9S", "6C", "2D")
        round_.stand()
        assert len(round_.dealer_hand) == 2
        assert round_.outcome == Outcome.PLAYER_WINS

    def test_dealer_bust_pays_player(self):
        round_ = dealt_round("10S", "10H", "9S", "6C", "KD")
        round_.stand()
        assert round_.dealer_score == 26
        assert round_.outcome == Outcome.PLAYER_WINS
        assert round_.balance == 1100

    def test_dealer_wins_higher_total(self):
        round_ = dealt_round("10S", "10H", "7S", "9C")
        round_.stand()
        assert round_.outcome == Outcome.DEALER_WINS
        assert round_.balance == 900

    def test_equal_totals_push(self):
        round_ = dealt_round("10S", "10H", "8S", "8C")
        round_.stand()
        assert round_.outcome == Outcome.PUSH
        assert round_.balance == 1000

    def test_player_blackjack(self):
        """Start 1000, bet 100, A-K against 10-9 settles at 1150."""
        round_ = Round(1000)
        round_.place_bet(100)
        assert round_.balance == 900
        round_.deal(stacked_deck("AS", "10H", "KS", "9C"))
        round_.stand()
        assert round_.outcome == Outcome.PLAYER_BLACKJACK
        assert round_.balance == 1150

    def test_dealer_blackjack(self):
        round_ = dealt_round("10S", "AH", "10C", "KD")
        round_.stand()
        assert round_.outcome == Outcome.DEALER_BLACKJACK
        assert round_.balance == 900

    def test_both_blackjack_push(self):
        round_ = dealt_round("AS", "AH", "KS", "QD")
        round_.stand()
        assert round_.outcome == Outcome.PUSH
        assert round_.balance == 1000

    def test_odd_bet_blackjack_truncates(self):
        round_ = dealt_round("AS", "10H", "KS", "9C", bet=15)
        round_.stand()
        assert round_.balance == 1000 - 15 + 37

    def test_stand_before_deal_rejected(self, betting_round):
        with pytest.raises(WrongPhaseError):
            betting_round.stand()
        assert betting_round.phase == Phase.BETTING

    def test_payout_applied_once(self):
        round_ = dealt_round("10S", "10H", "9S", "7C")
        round_.stand()
        balance = round_.balance
        with pytest.raises(WrongPhaseError):
            round_.stand()
        assert round_.balance == balance

    def test_shuffled_round_reaches_finished(self, new_round):
        new_round.place_bet(100)
        new_round.deal()
        while new_round.phase == Phase.PLAYER_TURN and new_round.player_score < 17:
            new_round.hit()
        if new_round.phase == Phase.PLAYER_TURN:
            new_round.stand()
        assert new_round.phase == Phase.FINISHED
        assert new_round.outcome is not None
        assert new_round.balance >= 900
        assert new_round.cards_remaining + len(new_round.player_hand) + len(new_round.dealer_hand) == 52


class TestNextRound:
    """Tests for carrying the balance into the next round."""

    def test_next_round_carries_balance(self):
        round_ = dealt_round("10S", "10H", "9S", "7C")
        round_.stand()
        following = round_.next_round(default_balance=1000)
        assert following is not round_
        assert following.balance == 1100
        assert following.phase == Phase.BETTING
        assert following.current_bet == 0
        assert round_.phase == Phase.FINISHED

    def test_next_round_resets_empty_balance(self):
        round_ = dealt_round("10S", "10H", "7S", "9C", balance=100)
        round_.stand()
        assert round_.balance == 0
        assert round_.next_round(default_balance=1000).balance == 1000

    def test_next_round_requires_finished(self, betting_round):
        with pytest.raises(WrongPhaseError):
            betting_round.next_round(default_balance=1000)

    @pytest.mark.parametrize(
        "previous,expected",
        [(None, 1000), (0, 1000), (-5, 1000), (1, 1), (2500, 2500)],
    )
    def test_starting_balance(self, previous, expected):
        assert starting_balance(previous, 1000) == expected


class TestSerialization:
    """Tests for the plain-data form of a round."""

    def test_roundtrip_mid_round(self):
        round_ = dealt_round("10S", "10H", "9S", "6C", "2D")
        restored = Round.from_dict(round_.to_dict())
        assert restored.phase == Phase.PLAYER_TURN
        assert restored.balance == 900
        assert restored.current_bet == 100
        assert restored.player_hand.cards == round_.player_hand.cards
        assert restored.dealer_hand.cards == round_.dealer_hand.cards
        assert restored.deck.cards == round_.deck.cards

    def test_restored_round_keeps_playing(self):
        round_ = dealt_round("10S", "10H", "9S", "6C", "2D")
        restored = Round.from_dict(round_.to_dict())
        restored.stand()
        assert restored.outcome == Outcome.PLAYER_WINS
        assert restored.balance == 1100

    def test_finished_round_dict(self):
        round_ = dealt_round("10S", "10H", "8S", "8C")
        round_.stand()
        data = round_.to_dict()
        assert data["phase"] == "finished"
        assert data["outcome"] == "push"
        assert Round.from_dict(data).outcome == Outcome.PUSH

    def test_new_round_dict(self, new_round):
        data = new_round.to_dict()
        assert data == {
            "phase": "betting",
            "outcome": None,
            "balance": 1000,
            "current_bet": 0,
            "deck": [],
            "player_hand": [],
            "dealer_hand": [],
        }

    @pytest.mark.parametrize(
        "changes",
        [
            {"balance": -1},
            {"current_bet": -1},
            {"current_bet": 0},
            {"outcome": "push"},
            {"phase": "finished"},
        ],
    )
    def test_invalid_data_rejected(self, changes):
        data = dealt_round("10S", "10H", "9S", "6C").to_dict()
        data.update(changes)
        with pytest.raises(ValueError):
            Round.from_dict(data)

    def test_duplicate_card_rejected(self):
        data = dealt_round("10S", "10H", "9S", "6C", "2D").to_dict()
        data["deck"].append(data["player_hand"][0])
        with pytest.raises(ValueError):
            Round.from_dict(data)


class TestPhaseTable:
    """Tests that the machine only moves along the phase table."""

    def test_machine_transitions_match_table(self):
        for transition in Round.TRANSITIONS:
            source = Phase[transition["source"].upper()]
            dest = Phase[transition["dest"].upper()]
            assert is_valid_transition(source, dest)

    @pytest.mark.parametrize(
        "source,dest",
        [
            (Phase.BETTING, Phase.FINISHED),
            (Phase.DEALER_TURN, Phase.PLAYER_TURN),
            (Phase.FINISHED, Phase.BETTING),
        ],
    )
    def test_invalid_transitions(self, source, dest):
        assert not is_valid_transition(source, dest)

    def test_phases_visited_by_a_full_round(self):
        round_ = dealt_round("10S", "10H", "7S", "6C", "5D")
        seen = [Phase.BETTING, round_.phase]
        round_.stand()
        seen.append(round_.phase)

        for source, dest in zip(seen, seen[1:]):
            assert is_valid_transition(source, dest)
