from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from driver_api import errors
from driver_api.auth.actor import Actor, AdminActor
from driver_api.auth.dependencies import require_admin, require_any_role
from driver_api.config import settings
from driver_api.db.session import get_db
from driver_api.integrations.blob_storage import BlobStorageProtocol, get_blob_storage
from driver_api.schemas.epod import (
    AttachEpodRequest,
    DownloadUrlResponse,
    EpodConfirmResponse,
    EpodResponse,
    FromPhotosResponse,
    UploadSlotResponse,
)
from driver_api.services import epod_service
from driver_api.services.pdf_builder import Photo

router = APIRouter(prefix="/api/epod", tags=["epod"])


def _read_photos(uploads: list[UploadFile] | None) -> list[Photo]:
    photos: list[Photo] = []
    total = 0
    for upload in uploads or []:
        content = upload.file.read()
        total += len(content)
        if total > settings.max_photo_upload_bytes:
            raise errors.InvalidArgument("Uploaded photos are too large.", errors.INVALID_PHOTO)
        photos.append(
            Photo(filename=upload.filename or "", content=content, content_type=upload.content_type)
        )
    return photos


@router.post("/{order_id}/upload-sas", response_model=UploadSlotResponse, summary="Reserve ePOD upload")
def request_upload_slot(
    order_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    actor: Actor = Depends(require_any_role),
) -> UploadSlotResponse:
    slot = epod_service.request_upload_slot(db, storage, order_id, actor)
    return UploadSlotResponse(blob_name=slot.blob_name, upload_url=slot.upload_url)


@router.post("/{order_id}/attach", response_model=EpodResponse, summary="Attach uploaded ePOD")
def attach(
    order_id: int,
    payload: AttachEpodRequest,
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    actor: Actor = Depends(require_any_role),
) -> EpodResponse:
    epod = epod_service.attach(
        db, storage, order_id, actor, payload.blob_name, lat=payload.lat, lng=payload.lng
    )
    return EpodResponse.from_record(epod)


@router.post("/{order_id}/confirm", response_model=EpodConfirmResponse, summary="Confirm ePOD")
def confirm(
    order_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    _actor: AdminActor = Depends(require_admin),
) -> EpodConfirmResponse:
    return EpodConfirmResponse.from_confirmation(epod_service.confirm(db, storage, order_id))


@router.get("/{order_id}/download-sas", response_model=DownloadUrlResponse, summary="ePOD download URL")
def download_url(
    order_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    _actor: AdminActor = Depends(require_admin),
) -> DownloadUrlResponse:
    return DownloadUrlResponse(download_url=epod_service.get_download_url(db, storage, order_id))


@router.post("/{order_id}/from-photos", response_model=FromPhotosResponse, summary="Build ePOD from photos")
def from_photos(
    order_id: int,
    photos: list[UploadFile] | None = File(default=None),
    lat: float | None = Form(default=None),
    lng: float | None = Form(default=None),
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    actor: Actor = Depends(require_any_role),
) -> FromPhotosResponse:
    epod = epod_service.create_from_photos(
        db, storage, order_id, actor, _read_photos(photos), lat=lat, lng=lng
    )
    return FromPhotosResponse(blob_name=epod.blob_name)
