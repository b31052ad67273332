"""QR image renderer with merchant labelling."""
from __future__ import annotations

import base64
import io
from typing import Any

import qrcode
from PIL import Image, ImageDraw, ImageFont


DEFAULT_BOX_SIZE = 10
QUIET_ZONE = 4


def make_qr_image(data: str, size: int | None = None) -> Image.Image:
    """Render ``data`` as a bare QR code, optionally fitted into ``size`` pixels.

    Modules are always whole pixels wide; the code is centred on a white square
    and the leftover pixels widen the quiet zone.
    """

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=DEFAULT_BOX_SIZE,
        border=QUIET_ZONE,
    )
    qr.add_data(data)
    qr.make(fit=True)

    if size is None:
        return qr.make_image(fill_color="black", back_color="white").convert("RGB")

    modules = qr.modules_count + 2 * QUIET_ZONE
    qr.box_size = max(1, size // modules)
    image = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    if image.width > size:
        return image.resize((size, size), Image.Resampling.NEAREST)

    canvas = Image.new("RGB", (size, size), color="white")
    offset = (size - image.width) // 2
    canvas.paste(image, (offset, offset))
    return canvas


def generate_qr_image(data: str, title: str = "QRIS", size: int | None = None) -> Image.Image:
    """Generate QR image with a framed label underneath."""

    qr_img = make_qr_image(data, size=size)
    width, height = qr_img.size

    label_height = 40
    margin = 40
    canvas_width = width + margin * 2
    canvas_height = height + margin * 2 + label_height

    canvas = Image.new("RGB", (canvas_width, canvas_height), color="#F5F7FA")
    canvas.paste(qr_img, (margin, margin))

    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default()
    text = title.upper()
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    text_x = (canvas_width - (right - left)) // 2
    text_y = margin + height + (label_height - (bottom - top)) // 2
    draw.rectangle(
        [(margin // 2, margin + height), (canvas_width - margin // 2, margin + height + label_height)],
        fill="#FFFFFF",
    )
    draw.text((text_x, text_y), text, fill="#1F2937", font=font)

    return canvas


def qr_image_to_png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_payload(payload: str, title: str | None = None, size: int | None = None) -> dict[str, Any]:
    """Render payload into PNG bytes and base64 string.

    Without a ``title`` the bare QR code is rendered at exactly ``size`` pixels.
    """

    if title:
        image = generate_qr_image(payload, title=title, size=size)
    else:
        image = make_qr_image(payload, size=size)
    png_bytes = qr_image_to_png_bytes(image)
    return {
        "png_bytes": png_bytes,
        "png_base64": base64.b64encode(png_bytes).decode("ascii"),
    }
