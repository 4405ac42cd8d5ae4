from driver_api.schemas.drivers import DriverCreate, DriverListResponse, DriverResponse
from driver_api.schemas.epod import (
    AttachEpodRequest,
    DownloadUrlResponse,
    EpodConfirmResponse,
    EpodResponse,
    FromPhotosResponse,
    UploadSlotResponse,
)
from driver_api.schemas.orders import (
    AdminSetStatusRequest,
    AssignDriverRequest,
    OrderBody,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    SetStatusRequest,
    SetStatusResponse,
    StatusLogListResponse,
    StatusLogResponse,
)
from driver_api.schemas.pipeline import InvoiceInfoRequest, PipelineActionResponse

__all__ = [
    "AdminSetStatusRequest",
    "AssignDriverRequest",
    "AttachEpodRequest",
    "DownloadUrlResponse",
    "DriverCreate",
    "DriverListResponse",
    "DriverResponse",
    "EpodConfirmResponse",
    "EpodResponse",
    "FromPhotosResponse",
    "InvoiceInfoRequest",
    "OrderBody",
    "OrderCreate",
    "OrderListResponse",
    "OrderResponse",
    "PipelineActionResponse",
    "SetStatusRequest",
    "SetStatusResponse",
    "StatusLogListResponse",
    "StatusLogResponse",
    "UploadSlotResponse",
]
