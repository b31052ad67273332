"""QR image decoding backed by OpenCV."""
from __future__ import annotations

import logging

import cv2
import numpy as np

logger = logging.getLogger("qrisdinamis.scan")


def decode_qr_image(image_bytes: bytes) -> str | None:
    """Decode the first QR code found in an encoded image (PNG, JPEG, ...).

    Returns ``None`` when the bytes are not a readable image or hold no QR code.
    """

    buffer = np.frombuffer(image_bytes, dtype=np.uint8)
    if buffer.size == 0:
        return None
    image = cv2.imdecode(buffer, cv2.IMREAD_GRAYSCALE)
    if image is None:
        logger.info("image could not be decoded", extra={"size_bytes": len(image_bytes)})
        return None

    data, points, _ = cv2.QRCodeDetector().detectAndDecode(image)
    if not data:
        logger.info(
            "no qr code found",
            extra={"width": image.shape[1], "height": image.shape[0], "detected": points is not None},
        )
        return None
    return data
