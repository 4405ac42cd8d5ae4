from typing import Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from driver_api.auth.actor import ADMIN_ROLE, DRIVER_ROLE, Actor, AdminActor, DriverActor
from driver_api.auth.jwt import JwtError, decode_jwt, jwt_http_exception
from driver_api.config import allowed_roles_list, settings
from driver_api.db.session import get_db
from driver_api.models.driver import Driver


def _driver_id_for_user(db: Session, user_id: int) -> int | None:
    return db.scalar(select(Driver.id).where(Driver.user_id == user_id))


def get_actor(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Actor:
    if not authorization or not authorization.startswith("Bearer "):
        raise jwt_http_exception("Missing bearer token")

    token = authorization.removeprefix("Bearer ").strip()
    try:
        claims = decode_jwt(token, settings.jwt_secret)
    except JwtError as err:
        raise jwt_http_exception("Invalid JWT") from err

    role = claims.role.capitalize()
    if role not in allowed_roles_list():
        raise jwt_http_exception("Invalid JWT claims")

    if role == ADMIN_ROLE:
        return AdminActor(user_id=claims.user_id)

    driver_id = claims.driver_id
    if driver_id is None:
        driver_id = _driver_id_for_user(db, claims.user_id)
    return DriverActor(user_id=claims.user_id, driver_id=driver_id)


def require_roles(*roles: str) -> Callable[[Actor], Actor]:
    def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return actor

    return dependency


require_admin = require_roles(ADMIN_ROLE)
require_driver = require_roles(DRIVER_ROLE)
require_any_role = require_roles(ADMIN_ROLE, DRIVER_ROLE)
