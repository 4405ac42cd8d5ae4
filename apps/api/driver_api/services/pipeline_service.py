"""Admin-only order lifecycle after delivery: complete, invoice, archive, pay.

Every stage is gated on the one before it. Failed preconditions raise
:class:`~driver_api.errors.PipelineConflict`, which the API renders as 400.
"""

from datetime import date

from sqlalchemy.orm import Session

from driver_api import errors
from driver_api.config import settings
from driver_api.db.types import utc_now
from driver_api.integrations.blob_storage import BlobStorageProtocol
from driver_api.models.epod_file import EpodStatus
from driver_api.models.order import Order, PipelineStage
from driver_api.observability import log_event, metrics_store

INVOICE_CONTENT_TYPE = "application/pdf"


def _get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise errors.NotFound("Order not found.")
    return order


def _save(db: Session, order: Order, stage_event: str) -> Order:
    db.commit()
    db.refresh(order)
    metrics_store.increment(f"pipeline_{stage_event}_total")
    log_event(f"order_{stage_event}", order_id=order.id, driver_id=order.driver_id)
    return order


def _require_completed(order: Order) -> None:
    if not order.is_completed_by_admin:
        raise errors.PipelineConflict("Complete the order (with ePOD) first.")


def complete(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    epod = order.epod_file
    if epod is None or not epod.blob_name.strip() or epod.status == EpodStatus.FAILED:
        raise errors.PipelineConflict("Cannot complete an order without ePOD.")

    # Completing again keeps an existing invoice but always leaves the archive.
    if order.pipeline_stage in (PipelineStage.INVOICED, PipelineStage.ARCHIVED):
        order.pipeline_stage = PipelineStage.INVOICED
    else:
        order.pipeline_stage = PipelineStage.COMPLETED
    order.completed_utc = utc_now()
    order.archived_utc = None
    order.is_paid = False
    order.paid_utc = None
    return _save(db, order, "completed")


def reopen(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    order.pipeline_stage = PipelineStage.OPEN
    order.completed_utc = None
    order.invoiced_utc = None
    order.archived_utc = None
    order.is_paid = False
    order.paid_utc = None
    order.contractor_name = ""
    order.payment_due_date = None
    order.invoice_blob_name = None
    return _save(db, order, "reopened")


def save_invoice_info(
    db: Session,
    order_id: int,
    contractor_name: str | None,
    payment_due_date: date | None,
) -> Order:
    order = _get_order(db, order_id)
    _require_completed(order)

    order.contractor_name = (contractor_name or "").strip()
    order.payment_due_date = payment_due_date
    return _save(db, order, "invoice_info_saved")


def _looks_like_pdf(filename: str | None, content_type: str | None) -> bool:
    if (content_type or "").lower() == INVOICE_CONTENT_TYPE:
        return True
    return (filename or "").lower().endswith(".pdf")


def upload_invoice(
    db: Session,
    storage: BlobStorageProtocol,
    order_id: int,
    filename: str | None,
    content: bytes,
    content_type: str | None = None,
) -> Order:
    order = _get_order(db, order_id)
    _require_completed(order)

    if not content:
        raise errors.PipelineConflict("No file was uploaded.")
    if not _looks_like_pdf(filename, content_type):
        raise errors.PipelineConflict("Only PDF invoices are allowed.")

    stamp = utc_now().strftime("%Y%m%d_%H%M%S")
    blob_name = f"invoices/{order.id}/invoice_{stamp}.pdf"
    storage.upload(blob_name, content, INVOICE_CONTENT_TYPE)

    order.invoice_blob_name = blob_name
    return _save(db, order, "invoice_uploaded")


def mark_invoiced(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    _require_completed(order)

    if not order.contractor_name or not order.contractor_name.strip():
        raise errors.PipelineConflict("Fill in the contractor.")
    if order.payment_due_date is None:
        raise errors.PipelineConflict("Fill in the payment due date.")
    if not order.invoice_blob_name or not order.invoice_blob_name.strip():
        raise errors.PipelineConflict("Attach the invoice PDF.")

    # An archived order stays archived; only the invoice stamp moves.
    if not order.is_archived:
        order.pipeline_stage = PipelineStage.INVOICED
    order.invoiced_utc = utc_now()
    order.is_paid = False
    order.paid_utc = None
    return _save(db, order, "invoiced")


def archive(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    if not order.is_invoiced:
        raise errors.PipelineConflict("Mark the order as invoiced first.")
    if not order.has_complete_invoice_data:
        raise errors.PipelineConflict("Invoice data is incomplete.")

    order.pipeline_stage = PipelineStage.ARCHIVED
    order.archived_utc = utc_now()
    return _save(db, order, "archived")


def mark_paid(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    if not order.is_archived:
        raise errors.PipelineConflict("Only archived orders can be marked as paid.")

    order.is_paid = True
    order.paid_utc = utc_now()
    return _save(db, order, "paid")


def mark_unpaid(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    if not order.is_archived:
        raise errors.PipelineConflict("Only archived orders can be marked as unpaid.")

    order.is_paid = False
    order.paid_utc = None
    return _save(db, order, "unpaid")


def unarchive(db: Session, order_id: int) -> Order:
    order = _get_order(db, order_id)
    if not order.is_archived:
        raise errors.PipelineConflict("Order is not archived.")

    # Invoice metadata stays so the order can be re-invoiced without re-entry.
    order.pipeline_stage = PipelineStage.COMPLETED
    order.invoiced_utc = None
    order.archived_utc = None
    order.is_paid = False
    order.paid_utc = None
    return _save(db, order, "unarchived")


def invoice_download_url(db: Session, storage: BlobStorageProtocol, order_id: int) -> str:
    order = _get_order(db, order_id)
    blob_name = order.invoice_blob_name
    if not blob_name or not blob_name.strip() or not storage.exists(blob_name):
        raise errors.NotFound("Invoice not found.", errors.BLOB_NOT_FOUND)
    return storage.create_download_url(blob_name, settings.epod_download_url_ttl_s)
