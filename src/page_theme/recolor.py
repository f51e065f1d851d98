"""Repaint page bitmaps into a two-colour theme.

Every pixel is classified by its HSV-style saturation:

1. Chromatic   (saturation > threshold): photographs, diagrams, highlighted
               code.  Left exactly as it is.

2. Achromatic  (near-grey): page background, body text, rules, shadows.
               Its lightness ``(max + min) / 510`` picks a point on the
               line from the theme foreground (0, black) to the theme
               background (1, white).

Alpha is never touched and the image is never resized.

The transform is one-shot: running it again on its own output generally
changes the result, because remapped pixels can be classified differently
the second time.  Always recolor from the original bitmap.

Undecodable input is handed back unchanged rather than raising; a failed
recolor must never block the page it belongs to, or the rest of a batch.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np

from page_theme.codec import Codec, CodecError, PixelBuffer, get_default_codec, sniff_format
from page_theme.colors import RGB
from page_theme.pdf import PageBitmap, PageUnavailable
from page_theme.themes import Theme

logger = logging.getLogger(__name__)

CHROMATIC_THRESHOLD = 0.18
LIGHTNESS_DIVISOR = 510.0  # 255 * 2
OUTPUT_FORMAT = "png"  # lossless; page sources are already JPEG


@dataclass(frozen=True)
class RecoloredBitmap:
    index: int
    width: int
    height: int
    data: bytes = field(repr=False)
    format: str = OUTPUT_FORMAT
    degraded: bool = False  # True: ``data`` is the untouched source


def recolor_pixels(
    pixels: PixelBuffer,
    background: RGB,
    foreground: RGB,
    chromatic_threshold: float = CHROMATIC_THRESHOLD,
    lightness_divisor: float = LIGHTNESS_DIVISOR,
) -> PixelBuffer:
    """Return a recolored copy of an ``(H, W, 3|4)`` uint8 buffer."""
    rgb = pixels[..., :3].astype(np.float64)
    hi = rgb.max(axis=-1)
    lo = rgb.min(axis=-1)

    saturation = np.divide(hi - lo, hi, out=np.zeros_like(hi), where=hi != 0)
    achromatic = saturation <= chromatic_threshold

    lightness = np.clip((hi + lo) / lightness_divisor, 0.0, 1.0)[..., np.newaxis]
    fg = np.asarray(foreground, dtype=np.float64)
    bg = np.asarray(background, dtype=np.float64)
    # floor(x + 0.5): half-up rounding, not numpy's half-to-even
    remapped = np.clip(np.floor(fg + (bg - fg) * lightness + 0.5), 0, 255).astype(np.uint8)

    out = pixels.copy()
    out[..., :3][achromatic] = remapped[achromatic]
    return out


def _recolor_encoded(
    data: bytes,
    background: RGB,
    foreground: RGB,
    codec: Codec,
    chromatic_threshold: float,
    lightness_divisor: float,
) -> Optional[tuple[bytes, int, int]]:
    try:
        pixels = codec.decode(data)
    except CodecError as e:
        logger.warning("Keeping original appearance, image not decodable: %s", e)
        return None
    out = recolor_pixels(pixels, background, foreground, chromatic_threshold, lightness_divisor)
    height, width = out.shape[:2]
    return codec.encode(out, OUTPUT_FORMAT), width, height


def recolor_image_bytes(
    data: bytes,
    background: RGB,
    foreground: RGB,
    *,
    codec: Optional[Codec] = None,
    chromatic_threshold: float = CHROMATIC_THRESHOLD,
    lightness_divisor: float = LIGHTNESS_DIVISOR,
) -> bytes:
    """Recolor encoded image bytes and return PNG bytes.

    If *data* cannot be decoded it is returned as-is.
    """
    result = _recolor_encoded(
        data, background, foreground, codec or get_default_codec(),
        chromatic_threshold, lightness_divisor,
    )
    return data if result is None else result[0]


def _resolve_colors(background: Union[Theme, RGB], foreground: Optional[RGB]) -> tuple[RGB, RGB]:
    if isinstance(background, Theme):
        return background.background, background.foreground
    if foreground is None:
        raise TypeError("foreground is required unless a Theme is passed")
    return background, foreground


def _passthrough(image: Union[PageBitmap, PageUnavailable]) -> Union[RecoloredBitmap, PageUnavailable]:
    if isinstance(image, PageUnavailable):
        return image
    return RecoloredBitmap(
        index=image.index,
        width=image.width,
        height=image.height,
        data=image.data,
        format=image.format or sniff_format(image.data) or "",
        degraded=True,
    )


def recolor(
    image: Union[PageBitmap, PageUnavailable],
    background: Union[Theme, RGB],
    foreground: Optional[RGB] = None,
    *,
    codec: Optional[Codec] = None,
    chromatic_threshold: float = CHROMATIC_THRESHOLD,
    lightness_divisor: float = LIGHTNESS_DIVISOR,
) -> Union[RecoloredBitmap, PageUnavailable]:
    """Recolor one page bitmap.

    *background* may be a ``Theme``, in which case *foreground* is omitted.
    A ``PageUnavailable`` placeholder is returned untouched.  Corrupt
    bitmaps come back with their original bytes and ``degraded=True``.
    """
    bg, fg = _resolve_colors(background, foreground)
    if isinstance(image, PageUnavailable):
        return image

    result = _recolor_encoded(
        image.data, bg, fg, codec or get_default_codec(),
        chromatic_threshold, lightness_divisor,
    )
    if result is None:
        return _passthrough(image)
    data, width, height = result
    return RecoloredBitmap(index=image.index, width=width, height=height, data=data)


def recolor_batch(
    images: Sequence[Union[PageBitmap, PageUnavailable]],
    background: Union[Theme, RGB],
    foreground: Optional[RGB] = None,
    *,
    max_workers: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
    codec: Optional[Codec] = None,
    chromatic_threshold: float = CHROMATIC_THRESHOLD,
    lightness_divisor: float = LIGHTNESS_DIVISOR,
) -> list[Union[RecoloredBitmap, PageUnavailable]]:
    """Recolor images concurrently; result ``i`` always belongs to input ``i``.

    Images that have not started when *cancel* is set or *timeout* seconds
    have passed are returned unchanged with ``degraded=True``.
    """
    if not images:
        return []

    bg, fg = _resolve_colors(background, foreground)
    deadline = time.monotonic() + timeout if timeout is not None else None

    def work(image):
        if (cancel is not None and cancel.is_set()) or (
            deadline is not None and time.monotonic() >= deadline
        ):
            logger.warning("Recolor stopped before page %d; keeping original", image.index)
            return _passthrough(image)
        return recolor(
            image, bg, fg,
            codec=codec,
            chromatic_threshold=chromatic_threshold,
            lightness_divisor=lightness_divisor,
        )

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="recolor") as pool:
        futures = [pool.submit(work, image) for image in images]
        # Gather by submission position, not completion order.
        return [future.result() for future in futures]
