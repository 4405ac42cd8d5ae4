import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from driver_api import errors
from driver_api.auth.actor import Actor
from driver_api.config import settings
from driver_api.db.types import utc_now
from driver_api.integrations.blob_storage import BlobStorageProtocol, normalize_blob_name
from driver_api.models.epod_file import EpodFile, EpodStatus
from driver_api.models.order import Order
from driver_api.observability import log_event, metrics_store, observe_timing
from driver_api.services.guards import can_attach_epod, can_request_upload_slot, enforce
from driver_api.services.pdf_builder import Photo, build_pdf_from_photos


@dataclass(frozen=True)
class UploadSlot:
    blob_name: str
    upload_url: str


@dataclass(frozen=True)
class EpodConfirmation:
    exists: bool
    blob_name: str
    status: EpodStatus
    uploaded_utc: datetime | None
    confirmed_utc: datetime | None


def new_epod_blob_name(order_id: int, now: datetime | None = None) -> str:
    stamp = (now or utc_now()).strftime("%Y%m%d_%H%M%S")
    return f"orders/{order_id}/epod_{stamp}_{uuid.uuid4().hex}.pdf"


def _get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise errors.NotFound("Order not found.")
    return order


def _confirmation(epod: EpodFile) -> EpodConfirmation:
    return EpodConfirmation(
        exists=epod.status == EpodStatus.CONFIRMED,
        blob_name=epod.blob_name,
        status=epod.status,
        uploaded_utc=epod.uploaded_utc,
        confirmed_utc=epod.confirmed_utc,
    )


def _record_attached(
    db: Session,
    order: Order,
    blob_name: str,
    lat: float | None,
    lng: float | None,
) -> EpodFile:
    now = utc_now()
    epod = order.epod_file
    if epod is None:
        epod = EpodFile(order_id=order.id, blob_name=blob_name, created_utc=now)
        db.add(epod)
        order.epod_file = epod
    elif epod.blob_name != blob_name:
        epod.blob_name = blob_name
        epod.created_utc = now

    epod.lat = lat
    epod.lng = lng
    epod.uploaded_utc = now
    epod.status = EpodStatus.PENDING
    epod.confirmed_utc = None
    return epod


def request_upload_slot(
    db: Session,
    storage: BlobStorageProtocol,
    order_id: int,
    actor: Actor,
) -> UploadSlot:
    order = _get_order(db, order_id)
    enforce(can_request_upload_slot(actor, order, order.epod_file))

    now = utc_now()
    blob_name = new_epod_blob_name(order.id, now)
    epod = order.epod_file
    if epod is None:
        epod = EpodFile(order_id=order.id)
        db.add(epod)
        order.epod_file = epod
    epod.blob_name = blob_name
    epod.created_utc = now
    epod.status = EpodStatus.PENDING
    epod.uploaded_utc = None
    epod.confirmed_utc = None
    # The slot must be recorded before the client can start uploading.
    db.commit()

    upload_url = storage.create_upload_url(
        blob_name, settings.epod_content_type, settings.epod_upload_url_ttl_s
    )
    metrics_store.increment("epod_upload_slot_issued_total")
    log_event("epod_upload_slot_issued", order_id=order.id, blob_name=blob_name)
    return UploadSlot(blob_name=blob_name, upload_url=upload_url)


def attach(
    db: Session,
    storage: BlobStorageProtocol,
    order_id: int,
    actor: Actor,
    blob_name: str | None,
    lat: float | None = None,
    lng: float | None = None,
) -> EpodFile:
    if not blob_name or not blob_name.strip():
        raise errors.InvalidArgument("blob_name is required.", errors.BLOB_NAME_REQUIRED)
    blob_name = normalize_blob_name(blob_name, settings.blob_bucket)
    if not blob_name:
        raise errors.InvalidArgument("blob_name is required.", errors.BLOB_NAME_REQUIRED)

    order = _get_order(db, order_id)
    enforce(can_attach_epod(actor, order, order.epod_file, blob_name))

    if not storage.exists(blob_name):
        raise errors.InvalidArgument("Blob does not exist", errors.BLOB_NOT_FOUND)

    epod = _record_attached(db, order, blob_name, lat, lng)
    db.commit()
    db.refresh(epod)

    metrics_store.increment("epod_attached_total")
    log_event(f"epod_attached by={actor.role}", order_id=order.id, blob_name=blob_name)
    return epod


def confirm(db: Session, storage: BlobStorageProtocol, order_id: int) -> EpodConfirmation:
    order = _get_order(db, order_id)
    epod = order.epod_file
    if epod is None or not epod.blob_name.strip():
        raise errors.Conflict("No ePOD has been attached to this order.", errors.EPOD_MISSING)

    if epod.status == EpodStatus.CONFIRMED:
        return _confirmation(epod)

    if not storage.exists(epod.blob_name):
        epod.status = EpodStatus.FAILED
        db.commit()
        metrics_store.increment("epod_confirm_failed_total")
        log_event("epod_confirm_failed", order_id=order.id, blob_name=epod.blob_name)
        raise errors.Conflict("ePOD blob was not found in storage.", errors.EPOD_BLOB_NOT_FOUND)

    now = utc_now()
    epod.status = EpodStatus.CONFIRMED
    epod.uploaded_utc = epod.uploaded_utc or now
    epod.confirmed_utc = now
    db.commit()
    db.refresh(epod)

    metrics_store.increment("epod_confirmed_total")
    log_event("epod_confirmed", order_id=order.id, blob_name=epod.blob_name)
    return _confirmation(epod)


def get_download_url(db: Session, storage: BlobStorageProtocol, order_id: int) -> str:
    order = _get_order(db, order_id)
    epod = order.epod_file
    if epod is None or not epod.blob_name.strip() or not storage.exists(epod.blob_name):
        raise errors.NotFound("ePOD not found.", errors.EPOD_NOT_FOUND)
    return storage.create_download_url(epod.blob_name, settings.epod_download_url_ttl_s)


def create_from_photos(
    db: Session,
    storage: BlobStorageProtocol,
    order_id: int,
    actor: Actor,
    photos: list[Photo],
    lat: float | None = None,
    lng: float | None = None,
) -> EpodFile:
    order = _get_order(db, order_id)
    enforce(can_attach_epod(actor, order, order.epod_file, None))

    with observe_timing("epod_pdf_render_seconds"):
        content = build_pdf_from_photos(photos)

    blob_name = new_epod_blob_name(order.id)
    storage.upload(blob_name, content, settings.epod_content_type)

    epod = _record_attached(db, order, blob_name, lat, lng)
    db.commit()
    db.refresh(epod)

    metrics_store.increment("epod_attached_total")
    log_event(
        f"epod_created_from_photos pages={len(photos)} by={actor.role}",
        order_id=order.id,
        blob_name=blob_name,
    )
    return epod
