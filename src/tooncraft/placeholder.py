"""Placeholder frames for scenes whose visuals could not be generated."""

from __future__ import annotations

import io

from PIL import Image, ImageDraw, ImageFont

from .payloads import encode_base64

PLACEHOLDER_SIZE = (1280, 720)
PLACEHOLDER_BACKGROUND = "#1e1e2e"
PLACEHOLDER_FOREGROUND = "#ffffff"


def render_placeholder(text: str, size: tuple[int, int] = PLACEHOLDER_SIZE) -> str:
    """Render ``text`` centred on a dark frame and return it as base64 JPEG."""
    image = Image.new("RGB", size, PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default(size=40)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    position = ((size[0] - (right - left)) // 2 - left, (size[1] - (bottom - top)) // 2 - top)
    draw.text(position, text, fill=PLACEHOLDER_FOREGROUND, font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG")
    return encode_base64(buffer.getvalue())
