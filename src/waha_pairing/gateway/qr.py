"""
QR Payload Normalization

The gateway hands out the pairing QR code in one of three shapes:

- base64 image blob with a separate mimetype:  {"mimetype": "image/png", "data": "<b64>"}
- a prebuilt data URI:                         {"qrCode": "data:image/png;base64,..."}
- a legacy bare field:                         {"qr": "<raw pairing code>"}

All three are resolved here, once, into a single `QrImage` so the pairing
state machine only ever sees an image-displayable data URI.
"""

import base64
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import qrcode

from .errors import QrCodeUnavailableError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:"
DEFAULT_MIMETYPE = "image/png"

# Field lookup order; first match wins
DATA_URI_FIELDS = ("qrCode", "qr_code")
LEGACY_FIELDS = ("qr", "value")


class QrSource(str, Enum):
    """Which gateway shape a QrImage was built from"""
    BASE64 = "base64"
    DATA_URI = "data_uri"
    RAW = "raw"


@dataclass(frozen=True)
class QrImage:
    """Canonical QR code value consumed by the pairing flow."""
    source: QrSource
    data_uri: str
    raw: Optional[str] = None  # Raw pairing code, when the gateway sent one

    @property
    def mimetype(self) -> str:
        header = self.data_uri[len(DATA_URI_PREFIX):].split(",", 1)[0]
        return header.split(";", 1)[0] or DEFAULT_MIMETYPE

    def image_bytes(self) -> bytes:
        """Decode the image behind the data URI (e.g. to serve or save it)."""
        header, _, payload = self.data_uri.partition(",")
        if header.endswith(";base64"):
            return base64.b64decode(payload)
        return payload.encode("utf-8")


def render_qr_data_uri(code: str) -> str:
    """Render a raw pairing code into a PNG data URI."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(code)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    img_bytes = io.BytesIO()
    img.save(img_bytes, format="PNG")
    encoded = base64.b64encode(img_bytes.getvalue()).decode("ascii")
    return f"data:{DEFAULT_MIMETYPE};base64,{encoded}"


def _from_fields(payload: Dict[str, Any]) -> Optional[QrImage]:
    # 1. base64 blob + mimetype
    data = payload.get("data")
    mimetype = payload.get("mimetype")
    if isinstance(data, str) and data and isinstance(mimetype, str) and mimetype:
        return QrImage(
            source=QrSource.BASE64,
            data_uri=f"data:{mimetype};base64,{data}",
        )

    # 2. prebuilt data URI (bare base64 is accepted as PNG)
    for field_name in DATA_URI_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str) and value:
            if value.startswith(DATA_URI_PREFIX):
                return QrImage(source=QrSource.DATA_URI, data_uri=value)
            return QrImage(
                source=QrSource.BASE64,
                data_uri=f"data:{DEFAULT_MIMETYPE};base64,{value}",
            )

    # 3. legacy bare string
    for field_name in LEGACY_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str) and value:
            if value.startswith(DATA_URI_PREFIX):
                return QrImage(source=QrSource.DATA_URI, data_uri=value)
            return QrImage(
                source=QrSource.RAW,
                data_uri=render_qr_data_uri(value),
                raw=value,
            )

    return None


def normalize_qr_payload(payload: Any) -> QrImage:
    """
    Resolve a gateway QR response into a QrImage.

    Looks at the top-level object first, then at a nested ``data`` object
    (platform APIs wrap gateway payloads in ``{"success": ..., "data": {...}}``).

    Raises:
        QrCodeUnavailableError: If no known field carries a QR code
    """
    if isinstance(payload, str) and payload:
        # Some gateways answer with the bare code or data URI as the body
        payload = {"qr": payload}

    if not isinstance(payload, dict):
        raise QrCodeUnavailableError()

    image = _from_fields(payload)
    if image is None and isinstance(payload.get("data"), dict):
        image = _from_fields(payload["data"])

    if image is None:
        logger.debug(f"No QR field in gateway payload keys: {sorted(payload.keys())}")
        raise QrCodeUnavailableError()

    return image
