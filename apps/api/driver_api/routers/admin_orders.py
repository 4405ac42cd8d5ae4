from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.orm import Session

from driver_api.auth.actor import AdminActor
from driver_api.auth.dependencies import require_admin
from driver_api.db.session import get_db
from driver_api.integrations.blob_storage import BlobStorageProtocol, get_blob_storage
from driver_api.schemas.epod import DownloadUrlResponse
from driver_api.schemas.orders import (
    AdminSetStatusRequest,
    AssignDriverRequest,
    OrderBody,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    SetStatusResponse,
    StatusLogListResponse,
    StatusLogResponse,
)
from driver_api.schemas.pipeline import InvoiceInfoRequest, PipelineActionResponse
from driver_api.services import orders_service, pipeline_service, status_service

router = APIRouter(prefix="/api/admin/orders", tags=["admin-orders"])


@router.get("", response_model=OrderListResponse, summary="List all orders")
def list_orders(
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> OrderListResponse:
    views = orders_service.list_all_orders(db)
    return OrderListResponse(items=[OrderResponse.from_view(view) for view in views])


@router.get("/today", response_model=OrderListResponse, summary="List today's orders")
def list_today(
    db: Session = Depends(get_db),
    actor: AdminActor = Depends(require_admin),
) -> OrderListResponse:
    views = orders_service.list_today_orders(db, actor)
    return OrderListResponse(items=[OrderResponse.from_view(view) for view in views])


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> OrderResponse:
    order = orders_service.create_order(
        db,
        payload.to_fields(),
        driver_id=payload.driver_id,
        status_value=payload.status,
    )
    return OrderResponse.from_order(order)


@router.put("/{order_id}", response_model=OrderResponse, summary="Edit order")
def edit_order(
    order_id: int,
    payload: OrderBody,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> OrderResponse:
    return OrderResponse.from_order(orders_service.edit_order(db, order_id, payload.to_fields()))


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete order")
def delete_order(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> Response:
    orders_service.delete_order(db, order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{order_id}/assign-driver", response_model=OrderResponse, summary="Assign driver")
def assign_driver(
    order_id: int,
    payload: AssignDriverRequest,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> OrderResponse:
    return OrderResponse.from_order(orders_service.assign_driver(db, order_id, payload.driver_id))


@router.post("/{order_id}/status", response_model=SetStatusResponse, summary="Override status")
def admin_set_status(
    order_id: int,
    payload: AdminSetStatusRequest,
    db: Session = Depends(get_db),
    actor: AdminActor = Depends(require_admin),
) -> SetStatusResponse:
    order = status_service.admin_set_status(db, order_id, actor, payload.status)
    return SetStatusResponse(status=order.status.label)


@router.get(
    "/{order_id}/status-logs",
    response_model=StatusLogListResponse,
    summary="Status audit trail",
)
def status_logs(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> StatusLogListResponse:
    logs = status_service.list_status_logs(db, order_id)
    return StatusLogListResponse(items=[StatusLogResponse.model_validate(log) for log in logs])


@router.post(
    "/{order_id}/complete",
    response_model=PipelineActionResponse,
    summary="Complete order",
)
def complete(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.complete(db, order_id)
    return PipelineActionResponse.for_action(order, "Order completed")


@router.post(
    "/{order_id}/reopen",
    response_model=PipelineActionResponse,
    summary="Reopen order",
)
def reopen(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.reopen(db, order_id)
    return PipelineActionResponse.for_action(order, "Order reopened")


@router.post(
    "/{order_id}/invoice-info",
    response_model=PipelineActionResponse,
    summary="Save invoice info",
)
def save_invoice_info(
    order_id: int,
    payload: InvoiceInfoRequest,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.save_invoice_info(
        db, order_id, payload.contractor_name, payload.payment_due_date
    )
    return PipelineActionResponse.for_action(order, "Invoice info saved")


@router.post(
    "/{order_id}/invoice/upload",
    response_model=PipelineActionResponse,
    summary="Upload invoice PDF",
)
def upload_invoice(
    order_id: int,
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    content = file.file.read() if file is not None else b""
    order = pipeline_service.upload_invoice(
        db,
        storage,
        order_id,
        filename=file.filename if file is not None else None,
        content=content,
        content_type=file.content_type if file is not None else None,
    )
    return PipelineActionResponse.for_action(order, "Invoice PDF saved")


@router.get(
    "/{order_id}/invoice/download-url",
    response_model=DownloadUrlResponse,
    summary="Invoice download URL",
)
def invoice_download_url(
    order_id: int,
    db: Session = Depends(get_db),
    storage: BlobStorageProtocol = Depends(get_blob_storage),
    _actor: AdminActor = Depends(require_admin),
) -> DownloadUrlResponse:
    url = pipeline_service.invoice_download_url(db, storage, order_id)
    return DownloadUrlResponse(download_url=url)


@router.post(
    "/{order_id}/invoice",
    response_model=PipelineActionResponse,
    summary="Mark invoiced",
)
def mark_invoiced(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.mark_invoiced(db, order_id)
    return PipelineActionResponse.for_action(order, "Marked as invoiced")


@router.post(
    "/{order_id}/archive",
    response_model=PipelineActionResponse,
    summary="Move to archive",
)
def archive(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.archive(db, order_id)
    return PipelineActionResponse.for_action(order, "Moved to archive")


@router.post(
    "/{order_id}/unarchive",
    response_model=PipelineActionResponse,
    summary="Take out of archive",
)
def unarchive(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.unarchive(db, order_id)
    return PipelineActionResponse.for_action(order, "Removed from archive")


@router.post(
    "/{order_id}/paid",
    response_model=PipelineActionResponse,
    summary="Mark paid",
)
def mark_paid(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.mark_paid(db, order_id)
    return PipelineActionResponse.for_action(order, "Marked as paid")


@router.post(
    "/{order_id}/unpaid",
    response_model=PipelineActionResponse,
    summary="Mark unpaid",
)
def mark_unpaid(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: AdminActor = Depends(require_admin),
) -> PipelineActionResponse:
    order = pipeline_service.mark_unpaid(db, order_id)
    return PipelineActionResponse.for_action(order, "Marked as unpaid")
