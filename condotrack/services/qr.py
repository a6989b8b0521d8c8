import base64
import io
import qrcode
import qrcode.image.svg
from qrcode.image.pil import PilImage
from qrcode.constants import ERROR_CORRECT_M

# 300px target at the default module count for a 64-char token URL
BOX_SIZE = 8
BORDER = 2


def _build(url: str, image_factory=None):
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=BOX_SIZE, border=BORDER,
                       image_factory=image_factory)
    qr.add_data(url)
    qr.make(fit=True)
    return qr.make_image()

def make_qr_bytes(url: str) -> bytes:
    """Return QR PNG bytes for the provided URL."""
    img = _build(url, image_factory=PilImage)
    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()

def to_data_uri(png: bytes) -> str:
    return 'data:image/png;base64,' + base64.b64encode(png).decode('ascii')

def make_qr_svg(url: str) -> str:
    img = _build(url, image_factory=qrcode.image.svg.SvgPathImage)
    return img.to_string(encoding='unicode')
