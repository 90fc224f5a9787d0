"""Pairing API endpoints: generate, enter, unpair."""

import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from secretcalc.api.deps import get_claim, get_relay
from secretcalc.config import settings
from secretcalc.database import get_session
from secretcalc.errors import ConflictError
from secretcalc.schemas.pairing import (
    EnterRequest,
    EnterResponse,
    GenerateRequest,
    GenerateResponse,
    SuccessResponse,
)
from secretcalc.services.pairing_service import consume_pairing, generate_pairing, unpair_room
from secretcalc.utils.clock import as_utc
from secretcalc.utils.security import Claim, issue_claim
from secretcalc.ws.relay import RelayEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pairing", tags=["pairing"])


@router.post("/generate", response_model=GenerateResponse)
def generate(request: GenerateRequest, session: Session = Depends(get_session)):
    """Issue a one-time code for the calling device. Code collisions are redrawn."""
    attempts = max(settings.code_generate_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            pairing = generate_pairing(request.device_id, session)
            break
        except ConflictError:
            logger.warning("Pairing code collision (attempt %d/%d)", attempt, attempts)
            if attempt == attempts:
                raise
    return GenerateResponse(
        code=pairing.code,
        expires_at=as_utc(pairing.expires_at),
        room_id=pairing.room_id,
    )


@router.post("/enter", response_model=EnterResponse)
async def enter(
    request: EnterRequest,
    session: Session = Depends(get_session),
    engine: RelayEngine = Depends(get_relay),
):
    """Redeem a code. The generator's registered connection receives its claim via ``paired``."""
    result = await run_in_threadpool(consume_pairing, request.code, request.device_id, session)

    generator_token = issue_claim(result.peer_device_id, result.room_id)
    enterer_token = issue_claim(result.device_id, result.room_id)

    await engine.notify_paired(result.peer_device_id, result.room_id, generator_token)
    return EnterResponse(room_id=result.room_id, token=enterer_token)


@router.post("/unpair", response_model=SuccessResponse)
async def unpair(
    claim: Claim = Depends(get_claim),
    session: Session = Depends(get_session),
    engine: RelayEngine = Depends(get_relay),
):
    """Delete the room, its history and its codes. Live sockets are told, not closed."""
    await run_in_threadpool(unpair_room, claim.room_id, session)
    await engine.notify_unpaired(claim.room_id)
    return SuccessResponse(success=True)
