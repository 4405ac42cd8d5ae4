from datetime import datetime

from pydantic import BaseModel, Field

from driver_api.models.epod_file import EpodFile
from driver_api.services.epod_service import EpodConfirmation


class UploadSlotResponse(BaseModel):
    blob_name: str
    upload_url: str


class AttachEpodRequest(BaseModel):
    blob_name: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)


class EpodResponse(BaseModel):
    order_id: int
    blob_name: str
    status: str
    lat: float | None
    lng: float | None
    created_utc: datetime
    uploaded_utc: datetime | None
    confirmed_utc: datetime | None

    @classmethod
    def from_record(cls, epod: EpodFile) -> "EpodResponse":
        return cls(
            order_id=epod.order_id,
            blob_name=epod.blob_name,
            status=epod.status.label,
            lat=epod.lat,
            lng=epod.lng,
            created_utc=epod.created_utc,
            uploaded_utc=epod.uploaded_utc,
            confirmed_utc=epod.confirmed_utc,
        )


class EpodConfirmResponse(BaseModel):
    exists: bool
    blob_name: str
    status: str
    uploaded_utc: datetime | None
    confirmed_utc: datetime | None

    @classmethod
    def from_confirmation(cls, confirmation: EpodConfirmation) -> "EpodConfirmResponse":
        return cls(
            exists=confirmation.exists,
            blob_name=confirmation.blob_name,
            status=confirmation.status.label,
            uploaded_utc=confirmation.uploaded_utc,
            confirmed_utc=confirmation.confirmed_utc,
        )


class DownloadUrlResponse(BaseModel):
    download_url: str


class FromPhotosResponse(BaseModel):
    blob_name: str
