"""Round resolution and payout rules."""

from core.game.state import Outcome
from core.hand import Hand

# Dealer draws while below this total
DEALER_STANDS_ON = 17


def dealer_should_hit(dealer_hand: Hand) -> bool:
    """
    Determine if the dealer draws another card.

    Plain ``< 17``: a busted total is already >= 17, so no separate bust
    check is needed.
    """
    return dealer_hand.value < DEALER_STANDS_ON


def evaluate_hands(player_hand: Hand, dealer_hand: Hand) -> Outcome:
    """
    Decide the outcome of a finished round.

    Naturals are compared before busts and totals; the first matching rule
    wins.
    """
    player_bj = player_hand.is_blackjack
    dealer_bj = dealer_hand.is_blackjack

    if player_bj and dealer_bj:
        return Outcome.PUSH
    if player_bj:
        return Outcome.PLAYER_BLACKJACK
    if dealer_bj:
        return Outcome.DEALER_BLACKJACK

    player_value = player_hand.value
    dealer_value = dealer_hand.value

    # Player bust loses even if the dealer busts too
    if player_value > 21:
        return Outcome.DEALER_WINS
    if dealer_value > 21:
        return Outcome.PLAYER_WINS

    if player_value > dealer_value:
        return Outcome.PLAYER_WINS
    if dealer_value > player_value:
        return Outcome.DEALER_WINS
    return Outcome.PUSH


def payout(outcome: Outcome, bet: int) -> int:
    """
    Return the amount credited back to the balance for an outcome.

    The wager was already deducted when it was placed, so a win returns the
    stake plus winnings. Blackjack returns 2.5x the stake, truncated.

    Args:
        outcome: Settled round outcome
        bet: Wager placed for the round

    Returns:
        Balance delta (never negative)
    """
    if outcome == Outcome.PLAYER_BLACKJACK:
        return bet * 5 // 2
    if outcome == Outcome.PLAYER_WINS:
        return bet * 2
    if outcome == Outcome.PUSH:
        return bet
    return 0
