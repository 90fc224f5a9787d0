"""Claim signing and verification."""

from datetime import timedelta

import jwt
import pytest

from secretcalc.config import settings
from secretcalc.errors import AuthError
from secretcalc.utils.clock import utcnow
from secretcalc.utils.security import issue_claim, random_code, verify_claim


def test_claim_round_trip():
    claim = verify_claim(issue_claim("A1", "room_x"))
    assert claim.device_id == "A1"
    assert claim.room_id == "room_x"


def test_issue_is_deterministic_without_ttl():
    assert issue_claim("A1", "room_x") == issue_claim("A1", "room_x")
    assert issue_claim("A1", "room_x") != issue_claim("B1", "room_x")


def test_claims_carry_no_expiry_by_default():
    payload = jwt.decode(issue_claim("A1", "room_x"), settings.jwt_secret, algorithms=["HS256"])
    assert "exp" not in payload


def test_swapped_payload_rejected():
    header, _, signature = issue_claim("A1", "room_x").split(".")
    forged_payload = issue_claim("A1", "room_other").split(".")[1]
    with pytest.raises(AuthError):
        verify_claim(f"{header}.{forged_payload}.{signature}")


def test_foreign_secret_rejected():
    token = jwt.encode({"deviceId": "A1", "roomId": "room_x"}, "other-secret", algorithm="HS256")
    with pytest.raises(AuthError):
        verify_claim(token)


@pytest.mark.parametrize("payload", [
    {"deviceId": "A1"},
    {"roomId": "room_x"},
    {"deviceId": 7, "roomId": "room_x"},
    {"deviceId": "", "roomId": "room_x"},
])
def test_malformed_payload_rejected(payload):
    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    with pytest.raises(AuthError):
        verify_claim(token)


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_garbage_rejected(token):
    with pytest.raises(AuthError):
        verify_claim(token)


def test_ttl_adds_expiry(monkeypatch):
    monkeypatch.setattr(settings, "claim_ttl_seconds", 60)
    payload = jwt.decode(issue_claim("A1", "room_x"), settings.jwt_secret, algorithms=["HS256"])
    assert "exp" in payload


def test_expired_claim_rejected():
    token = jwt.encode(
        {"deviceId": "A1", "roomId": "room_x", "exp": utcnow() - timedelta(seconds=5)},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(AuthError):
        verify_claim(token)


def test_random_code_is_six_digits():
    for _ in range(200):
        code = random_code()
        assert len(code) == 6 and code.isdigit() and code[0] != "0"
