"""Raster decode/encode behind a small interface.

The rasterizer and recolorer only ever see a ``PixelBuffer``: an owned
``uint8`` numpy array shaped ``(H, W, 3)`` for RGB or ``(H, W, 4)`` for
RGBA.  Anything that can turn bytes into such an array and back can be
plugged in; ``PillowCodec`` is the default.
"""

import io
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

PixelBuffer = np.ndarray

FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG"}
HIGH_BIT_DEPTH_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")


class CodecError(ValueError):
    """Raised when bytes cannot be decoded into pixels (or pixels encoded)."""


class Codec(ABC):
    @abstractmethod
    def decode(self, data: bytes) -> PixelBuffer:
        """Decode encoded image bytes into an RGB or RGBA pixel buffer."""
        ...

    @abstractmethod
    def encode(
        self,
        pixels: PixelBuffer,
        format: str = "png",
        quality: Optional[float] = None,
    ) -> bytes:
        """Encode a pixel buffer.  *quality* in (0, 1] applies to lossy formats."""
        ...


def jpeg_quality(quality: float) -> int:
    """Map a 0-1 quality factor onto Pillow's 1-100 JPEG scale."""
    return max(1, min(100, int(round(quality * 100))))


class PillowCodec(Codec):
    def decode(self, data: bytes) -> PixelBuffer:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            EOFError,
            SyntaxError,
            ValueError,
        ) as e:
            raise CodecError(f"Cannot decode image: {e}") from e

        if img.mode in HIGH_BIT_DEPTH_MODES:
            # convert() would clip 16-bit samples at 255; rescale instead.
            wide = np.asarray(img, dtype=np.float64)
            grey = np.clip(np.floor(wide / 257 + 0.5), 0, 255).astype(np.uint8)
            return np.repeat(grey[..., np.newaxis], 3, axis=-1)

        # Palette and grayscale images carrying transparency keep their alpha;
        # everything else is normalised to plain RGB.
        has_alpha = img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
        img = img.convert("RGBA" if has_alpha else "RGB")
        return np.array(img, dtype=np.uint8)

    def encode(
        self,
        pixels: PixelBuffer,
        format: str = "png",
        quality: Optional[float] = None,
    ) -> bytes:
        try:
            pil_format = FORMATS[format.lower()]
        except KeyError:
            raise CodecError(f"Unsupported output format: {format}") from None

        img = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
        buf = io.BytesIO()
        if pil_format == "JPEG":
            # JPEG has no alpha channel.
            img = img.convert("RGB")
            img.save(buf, format="JPEG", quality=jpeg_quality(quality or 0.8))
        else:
            img.save(buf, format="PNG")
        return buf.getvalue()


_default_codec = PillowCodec()


def get_default_codec() -> Codec:
    return _default_codec


def sniff_format(data: bytes) -> Optional[str]:
    """Best-effort format name from magic bytes ("png", "jpeg" or None)."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if data[:3] == b"\xff\xd8\xff":
        return "jpeg"
    return None
