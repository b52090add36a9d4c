"""Round API endpoints."""

import time
from typing import Annotated, Any

from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from api.schemas import (
    BetRequest,
    CardResponse,
    ErrorResponse,
    HandResponse,
    NewRoundResponse,
    RoundData,
    RoundStateResponse,
    SessionData,
)
from api.session import (
    create_session_id,
    extract_session_id,
    get_session_store,
    session_lock,
)
from config import config
from core.cards import Card
from core.errors import (
    EmptyDeckError,
    InsufficientBalanceError,
    InvalidBetError,
    RoundError,
    WrongPhaseError,
)
from core.game import Phase, Round, starting_balance
from core.hand import Hand

router = APIRouter()

SessionToken = Annotated[str, Header(alias="X-Session-ID")]

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"description": "Unknown or expired session"},
    409: {"model": ErrorResponse},
}

# HTTP status for each engine error
_ERROR_STATUS: dict[type[RoundError], int] = {
    InvalidBetError: 400,
    InsufficientBalanceError: 400,
    WrongPhaseError: 409,
    EmptyDeckError: 500,
}


def _card_to_response(card: Card) -> CardResponse:
    return CardResponse(rank=str(card.rank), suit=str(card.suit), value=card.value)


def _hand_to_response(hand: Hand, hide_hole_card: bool = False) -> HandResponse:
    """Convert a Hand to HandResponse, masking the second card if asked."""
    cards = []
    for i, card in enumerate(hand.cards):
        if hide_hole_card and i == 1:
            cards.append(CardResponse(rank=None, suit=None, value=None, hidden=True))
        else:
            cards.append(_card_to_response(card))

    visible = Hand(cards=hand.cards[:1]) if hide_hole_card else hand
    return HandResponse(
        cards=cards,
        value=visible.value,
        is_soft=visible.is_soft,
        is_blackjack=visible.is_blackjack,
        is_busted=visible.is_busted,
    )


def _round_state_response(round_: Round) -> RoundStateResponse:
    """Convert round state to response."""
    return RoundStateResponse(
        phase=round_.phase.name,
        outcome=round_.outcome.value if round_.outcome else None,
        balance=round_.balance,
        current_bet=round_.current_bet,
        player_hand=_hand_to_response(round_.player_hand),
        dealer_hand=_hand_to_response(
            round_.dealer_hand, hide_hole_card=round_.is_dealer_card_hidden
        ),
        dealer_score=round_.visible_dealer_score,
        is_dealer_card_hidden=round_.is_dealer_card_hidden,
        cards_remaining=round_.cards_remaining,
        can_hit=round_.can_hit,
        can_stand=round_.can_stand,
    )


def _error_response(exc: RoundError, round_: Round) -> JSONResponse:
    """Report a rejected action along with the untouched balance."""
    body = ErrorResponse(detail=str(exc), balance=round_.balance)
    return JSONResponse(status_code=_ERROR_STATUS[type(exc)], content=body.model_dump())


def _resolve_session(token: str) -> str:
    """Map a signed token to its session ID or fail with 404."""
    session_id = extract_session_id(token)
    if session_id is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session_id


async def _load_session(session_id: str) -> SessionData:
    """Load session data from the store."""
    store = await get_session_store()
    data = await store.get(session_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionData.model_validate(data)


async def _save_session(session_id: str, session: SessionData, round_: Round) -> None:
    """Persist the round, remembering its balance once it is finished."""
    session.round = RoundData.model_validate(round_.to_dict())
    if round_.phase == Phase.FINISHED:
        session.last_finished_balance = round_.balance
    session.last_activity = int(time.time())

    store = await get_session_store()
    await store.set(session_id, session.model_dump())


@router.post("/new")
async def new_round(
    reset: Annotated[bool, Query()] = False,
    token: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> NewRoundResponse:
    """
    Open a new round in the betting phase.

    The balance carries over from the last finished round of the session,
    falling back to the default when there is none, it ran out, or the
    caller asks for a reset.
    """
    session_id = extract_session_id(token) if token else None
    if session_id is None:
        session_id, token = create_session_id()

    store = await get_session_store()
    async with session_lock(session_id):
        data = await store.get(session_id)

        previous: int | None = None
        created_at = int(time.time())
        if data is not None:
            session = SessionData.model_validate(data)
            previous = session.last_finished_balance
            created_at = session.created_at

        if reset:
            previous = None

        round_ = Round(starting_balance(previous, config.game.default_balance))
        session = SessionData.model_validate(
            {
                "round": round_.to_dict(),
                "last_finished_balance": previous,
                "created_at": created_at,
                "last_activity": int(time.time()),
            }
        )
        await store.set(session_id, session.model_dump())

    return NewRoundResponse(session_id=token, balance=round_.balance)


@router.get("/state")
async def get_state(token: SessionToken) -> RoundStateResponse:
    """Get current round state."""
    session_id = _resolve_session(token)
    session = await _load_session(session_id)
    return _round_state_response(Round.from_dict(session.round.model_dump()))


@router.post("/bet", response_model=RoundStateResponse, responses=_ERROR_RESPONSES)
async def place_bet(request: BetRequest, token: SessionToken):
    """Place a bet and deal the opening cards."""
    session_id = _resolve_session(token)
    async with session_lock(session_id):
        session = await _load_session(session_id)
        round_ = Round.from_dict(session.round.model_dump())

        try:
            round_.place_bet(request.amount)
        except RoundError as exc:
            return _error_response(exc, round_)

        round_.deal()
        await _save_session(session_id, session, round_)

    return _round_state_response(round_)


async def _apply_action(token: str, action: str):
    """Run hit or stand against the session's round."""
    session_id = _resolve_session(token)
    async with session_lock(session_id):
        session = await _load_session(session_id)
        round_ = Round.from_dict(session.round.model_dump())

        try:
            getattr(round_, action)()
        except RoundError as exc:
            return _error_response(exc, round_)

        await _save_session(session_id, session, round_)

    return _round_state_response(round_)


@router.post("/hit", response_model=RoundStateResponse, responses=_ERROR_RESPONSES)
async def hit(token: SessionToken):
    """Draw another card for the player."""
    return await _apply_action(token, "hit")


@router.post("/stand", response_model=RoundStateResponse, responses=_ERROR_RESPONSES)
async def stand(token: SessionToken):
    """Stand; the dealer plays out and the round is settled."""
    return await _apply_action(token, "stand")


@router.post("/next", response_model=RoundStateResponse, responses=_ERROR_RESPONSES)
async def next_round(token: SessionToken):
    """Start the next round from a finished one, carrying over the balance."""
    session_id = _resolve_session(token)
    async with session_lock(session_id):
        session = await _load_session(session_id)
        round_ = Round.from_dict(session.round.model_dump())

        try:
            following = round_.next_round(config.game.default_balance)
        except RoundError as exc:
            return _error_response(exc, round_)

        await _save_session(session_id, session, following)

    return _round_state_response(following)
