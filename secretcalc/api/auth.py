"""Claim verification endpoint."""

from fastapi import APIRouter, Depends

from secretcalc.api.deps import get_claim
from secretcalc.schemas.pairing import VerifyResponse
from secretcalc.utils.security import Claim

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/verify", response_model=VerifyResponse)
def verify(claim: Claim = Depends(get_claim)):
    return VerifyResponse(valid=True, room_id=claim.room_id, device_id=claim.device_id)
