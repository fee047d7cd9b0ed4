"""QR code rendering for table and session links."""

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def render_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    """
    Encode data as a QR code and return PNG bytes.

    Args:
        data: Text to encode (usually a URL)
        box_size: Pixels per module
        border: Quiet-zone width in modules
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
