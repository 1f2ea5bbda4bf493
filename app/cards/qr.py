import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage
from PIL import Image

from app.core.config import PUBLIC_BASE_URL, logger

# Strongest first; long payloads drop to a level with more capacity
ERROR_CORRECTION_LEVELS = (ERROR_CORRECT_H, ERROR_CORRECT_Q, ERROR_CORRECT_M, ERROR_CORRECT_L)


class QRCodeTooLarge(ValueError):
    """Raised when a payload does not fit a QR code at any error-correction level."""
    pass


def make_qr_image(payload: str, box_size: int = 6, border: int = 4) -> Image.Image:
    """QR code with a quiet-zone margin, at the highest error correction the payload allows."""
    for level in ERROR_CORRECTION_LEVELS:
        qr = qrcode.QRCode(
            error_correction=level,
            box_size=box_size,
            border=border,
            image_factory=PilImage,
        )
        qr.add_data(payload)
        try:
            qr.make(fit=True)
        except (DataOverflowError, ValueError):
            continue
        return qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")

    logger.warning(f"QR payload of {len(payload)} characters does not fit any QR version")
    raise QRCodeTooLarge("Too much data for a QR code.")


def qr_png(payload: str, size: int = 180) -> bytes:
    image = make_qr_image(payload).resize((size, size), Image.Resampling.NEAREST)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def qr_data_uri(payload: str, size: int = 180) -> str:
    """QR code as a data: URI for embedding straight into a template."""
    encoded = base64.b64encode(qr_png(payload, size)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def detail_page_url(registration_id: int, request_base_url: str = "") -> str:
    """
    Absolute link to a registration's detail page.

    This is what gallery QR codes encode: scanning opens the page, it does
    not import a contact.
    """
    base = (PUBLIC_BASE_URL or request_base_url).rstrip("/")
    return f"{base}/admin-dashboard/details?id={registration_id}"
