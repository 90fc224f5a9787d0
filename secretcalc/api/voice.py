"""Voice note upload endpoint."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from secretcalc.api.deps import get_claim
from secretcalc.config import settings
from secretcalc.errors import ValidationError
from secretcalc.schemas.pairing import VoiceUploadResponse
from secretcalc.utils.security import Claim
from secretcalc.utils.storage import save_voice_note

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["voice"])


@router.post("/upload", response_model=VoiceUploadResponse)
def upload(
    file: UploadFile | None = File(default=None),
    claim: Claim = Depends(get_claim),
):
    """Store a voice note and return the URL to put in a voice message."""
    if file is None:
        raise ValidationError("No file uploaded")

    data = file.file.read(settings.voice_max_bytes + 1)
    if not data:
        raise ValidationError("No file uploaded")
    if len(data) > settings.voice_max_bytes:
        raise HTTPException(status_code=413, detail="File too large (max 10MB)")

    url = save_voice_note(data, file.filename)
    logger.info("Stored voice note for room %s (%d bytes)", claim.room_id, len(data))
    return VoiceUploadResponse(url=url)
