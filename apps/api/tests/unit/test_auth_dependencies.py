import pytest
from fastapi import HTTPException

from driver_api.auth.actor import AdminActor, DriverActor
from driver_api.auth.dependencies import get_actor, require_admin, require_driver
from driver_api.auth.jwt import JwtError, TokenClaims, decode_jwt, issue_jwt
from driver_api.config import settings

SECRET = "unit-test-secret"


def _bearer(claims: TokenClaims, secret: str | None = None) -> str:
    return f"Bearer {issue_jwt(claims, secret or settings.jwt_secret)}"


def test_jwt_round_trip_keeps_driver_claim():
    token = issue_jwt(TokenClaims(user_id=7, role="Driver", driver_id=3), SECRET)

    assert decode_jwt(token, SECRET) == TokenClaims(user_id=7, role="Driver", driver_id=3)


def test_jwt_with_wrong_signature_is_rejected():
    token = issue_jwt(TokenClaims(user_id=1, role="Admin"), SECRET)

    with pytest.raises(JwtError, match="signature"):
        decode_jwt(token, "another-secret")


def test_expired_jwt_is_rejected():
    token = issue_jwt(TokenClaims(user_id=1, role="Admin"), SECRET, expires_in_s=-10)

    with pytest.raises(JwtError, match="Expired"):
        decode_jwt(token, SECRET)


def test_malformed_jwt_is_rejected():
    with pytest.raises(JwtError):
        decode_jwt("not-a-token", SECRET)


def test_get_actor_requires_bearer(db_session):
    with pytest.raises(HTTPException) as exc_info:
        get_actor(None, db_session)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Missing bearer token"
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


def test_get_actor_rejects_bad_signature(db_session):
    header = _bearer(TokenClaims(user_id=1, role="Admin"), secret="forged")

    with pytest.raises(HTTPException) as exc_info:
        get_actor(header, db_session)

    assert exc_info.value.status_code == 401


def test_get_actor_rejects_unknown_role(db_session):
    with pytest.raises(HTTPException) as exc_info:
        get_actor(_bearer(TokenClaims(user_id=1, role="Dispatcher")), db_session)

    assert exc_info.value.detail == "Invalid JWT claims"


def test_get_actor_builds_admin(db_session):
    actor = get_actor(_bearer(TokenClaims(user_id=1, role="admin")), db_session)

    assert actor == AdminActor(user_id=1)


def test_get_actor_uses_driver_claim(db_session):
    actor = get_actor(_bearer(TokenClaims(user_id=9, role="Driver", driver_id=4)), db_session)

    assert actor == DriverActor(user_id=9, driver_id=4)


def test_get_actor_resolves_missing_driver_claim_from_profile(db_session, driver):
    actor = get_actor(_bearer(TokenClaims(user_id=driver.user_id, role="Driver")), db_session)

    assert actor == DriverActor(user_id=driver.user_id, driver_id=driver.id)


def test_get_actor_keeps_driver_without_profile(db_session):
    actor = get_actor(_bearer(TokenClaims(user_id=404, role="Driver")), db_session)

    assert actor == DriverActor(user_id=404, driver_id=None)


def test_role_dependencies():
    admin = AdminActor(user_id=1)
    driver = DriverActor(user_id=2, driver_id=2)

    assert require_admin(admin) is admin
    assert require_driver(driver) is driver
    with pytest.raises(HTTPException) as exc_info:
        require_admin(driver)
    assert exc_info.value.status_code == 403
    assert exc_info.value.detail == "Insufficient role"
