"""Common API dependencies: claim extraction, relay access."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from secretcalc.errors import AuthError
from secretcalc.utils.security import Claim, verify_claim
from secretcalc.ws.relay import RelayEngine, relay

bearer_scheme = HTTPBearer(auto_error=False)


def get_claim(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Claim:
    """Extract and verify the room claim from the bearer token."""
    if credentials is None:
        raise AuthError("Unauthorized")
    return verify_claim(credentials.credentials)


def get_relay() -> RelayEngine:
    return relay
