"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field


class NewRoundResponse(BaseModel):
    """A freshly opened round."""

    session_id: str
    balance: int


class BetRequest(BaseModel):
    """Request to place a bet and deal."""

    # Range checks live in the engine so errors keep the round's balance
    amount: int = Field(..., description="Bet amount")


class CardResponse(BaseModel):
    """Card representation; rank and suit are None for a face-down card."""

    rank: str | None
    suit: str | None
    value: int | None
    hidden: bool = False


class HandResponse(BaseModel):
    """Hand representation."""

    cards: list[CardResponse]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool


class RoundStateResponse(BaseModel):
    """Current round state as the player may see it."""

    phase: str
    outcome: str | None
    balance: int
    current_bet: int
    player_hand: HandResponse
    dealer_hand: HandResponse
    dealer_score: int
    is_dealer_card_hidden: bool
    cards_remaining: int
    can_hit: bool
    can_stand: bool


class ErrorResponse(BaseModel):
    """Rejected action; the balance is unchanged."""

    detail: str
    balance: int


# Session persistence schemas
class CardData(BaseModel):
    """Serialized card data."""

    rank: int = Field(..., ge=2, le=14)
    suit: int = Field(..., ge=1, le=4)


class RoundData(BaseModel):
    """Serialized round state for session storage."""

    phase: str
    outcome: str | None = None
    balance: int = Field(..., ge=0)
    current_bet: int = Field(..., ge=0)
    deck: list[CardData]
    player_hand: list[CardData]
    dealer_hand: list[CardData]


class SessionData(BaseModel):
    """Complete session data structure."""

    round: RoundData
    last_finished_balance: int | None = None
    created_at: int
    last_activity: int
