"""Message history API endpoints."""

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from secretcalc.api.deps import get_claim, get_relay
from secretcalc.database import get_session
from secretcalc.errors import ForbiddenError
from secretcalc.schemas.message import MessageResponse, to_message_response
from secretcalc.schemas.pairing import SuccessResponse
from secretcalc.services.message_service import clear_messages, list_messages
from secretcalc.utils.security import Claim
from secretcalc.ws.relay import RelayEngine

router = APIRouter(prefix="/messages", tags=["messages"])


def _require_room(claim: Claim, room_id: str) -> None:
    if claim.room_id != room_id:
        raise ForbiddenError("Forbidden")


@router.get("/{room_id}", response_model=list[MessageResponse])
def get_messages(
    room_id: str,
    claim: Claim = Depends(get_claim),
    session: Session = Depends(get_session),
):
    """Oldest-first history of the claim's room, capped at 500."""
    _require_room(claim, room_id)
    return [to_message_response(m) for m in list_messages(claim.room_id, session)]


@router.delete("/{room_id}", response_model=SuccessResponse)
async def delete_messages(
    room_id: str,
    claim: Claim = Depends(get_claim),
    session: Session = Depends(get_session),
    engine: RelayEngine = Depends(get_relay),
):
    _require_room(claim, room_id)
    await run_in_threadpool(clear_messages, claim.room_id, session)
    await engine.notify_chat_cleared(claim.room_id)
    return SuccessResponse(success=True)
