"""
Render delivery photos into a single ePOD PDF.
"""

import io
import os
import tempfile
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError
from reportlab.pdfgen import canvas

from driver_api import errors

_PDF_MAGIC = b"%PDF"


@dataclass(frozen=True)
class Photo:
    filename: str
    content: bytes
    content_type: str | None = None


def _is_pdf(photo: Photo) -> bool:
    if photo.content.lstrip()[:4] == _PDF_MAGIC:
        return True
    if (photo.content_type or "").lower() == "application/pdf":
        return True
    return photo.filename.lower().endswith(".pdf")


def _load_image(photo: Photo) -> Image.Image:
    if _is_pdf(photo):
        raise errors.InvalidArgument(
            f"{photo.filename or 'upload'} is a PDF, not a photo.", errors.INVALID_PHOTO
        )
    try:
        with Image.open(io.BytesIO(photo.content)) as probe:
            probe.verify()
        # verify() leaves the image unusable, so decode again for drawing.
        image = Image.open(io.BytesIO(photo.content))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise errors.InvalidArgument(
            f"{photo.filename or 'upload'} is not a readable image.", errors.INVALID_PHOTO
        ) from exc

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    return image


def build_pdf_from_photos(photos: list[Photo]) -> bytes:
    """
    Build one PDF page per photo, each page sized to the photo in pixels.

    Args:
        photos: Uploaded images in page order

    Returns:
        PDF file as bytes
    """
    if not photos:
        raise errors.InvalidArgument("At least one photo is required.", errors.NO_PHOTOS)

    images = [_load_image(photo) for photo in photos]

    with tempfile.TemporaryDirectory(prefix="epod_") as tmp_dir:
        pdf_path = os.path.join(tmp_dir, "epod.pdf")
        pdf = canvas.Canvas(pdf_path)

        for index, image in enumerate(images, start=1):
            width, height = image.size
            image_path = os.path.join(tmp_dir, f"img_{index}.png")
            image.save(image_path, format="PNG")
            image.close()

            pdf.setPageSize((width, height))
            pdf.drawImage(image_path, 0, 0, width=width, height=height)
            pdf.showPage()

        pdf.save()
        with open(pdf_path, "rb") as fh:
            return fh.read()
