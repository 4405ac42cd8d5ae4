from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from driver_api.auth.actor import AdminActor
from driver_api.auth.dependencies import require_admin
from driver_api.db.session import get_db
from driver_api.schemas.drivers import DriverCreate, DriverListResponse, DriverResponse
from driver_api.services import drivers_service

router = APIRouter(prefix="/api/admin/drivers", tags=["admin-drivers"])


@router.get("", response_model=DriverListResponse, summary="List drivers")
def list_drivers(
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> DriverListResponse:
    drivers = drivers_service.list_drivers(db)
    return DriverListResponse(items=[DriverResponse.from_driver(driver) for driver in drivers])


@router.post(
    "",
    response_model=DriverResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create driver with login",
)
def create_driver(
    payload: DriverCreate,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> DriverResponse:
    driver = drivers_service.create_driver(db, payload.to_new_driver())
    return DriverResponse.from_driver(driver)
