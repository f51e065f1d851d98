"""PDF to page bitmaps using PyMuPDF."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Union

import fitz  # PyMuPDF
import numpy as np

from page_theme.codec import Codec, PixelBuffer, get_default_codec

logger = logging.getLogger(__name__)

DEFAULT_SCALE = 1.5
DEFAULT_QUALITY = 0.8
DEFAULT_MAX_PAGES = 50
PAGE_FORMAT = "jpeg"


class RasterError(Exception):
    """Base class for rasterization failures."""


class DecodeError(RasterError):
    """The document could not be opened as a PDF at all."""


class PageUnavailableError(RasterError):
    def __init__(self, index: int, reason: str = "") -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Page {index} could not be rendered" + (f": {reason}" if reason else ""))


class RasterCancelled(RasterError):
    """Cancelled or timed out; ``completed`` holds the slots rendered so far."""

    def __init__(self, completed: list) -> None:
        self.completed = completed
        super().__init__(f"Rasterization cancelled after {len(completed)} page(s)")


@dataclass(frozen=True)
class PageBitmap:
    index: int  # 1-based PDF page number
    width: int
    height: int
    data: bytes = field(repr=False)
    format: str = PAGE_FORMAT


@dataclass(frozen=True)
class PageUnavailable:
    """Placeholder keeping a failed page's slot so later indices stay aligned."""

    index: int
    reason: str = ""


PageSlot = Union[PageBitmap, PageUnavailable]

# Low-level MuPDF failures (FzErrorLimit, FzErrorFormat, ...) do not derive
# from RuntimeError.
MUPDF_ERRORS = (RuntimeError, ValueError, MemoryError, fitz.mupdf.FzErrorBase)


def _open(pdf_bytes: bytes) -> "fitz.Document":
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except (*MUPDF_ERRORS, TypeError) as e:
        raise DecodeError(f"Cannot open PDF: {e}") from e
    if doc.needs_pass:
        doc.close()
        raise DecodeError("PDF is encrypted")
    return doc


def page_count(pdf_bytes: bytes) -> int:
    """Total number of pages in the document."""
    doc = _open(pdf_bytes)
    try:
        return doc.page_count
    finally:
        doc.close()


def _render_page(page: "fitz.Page", matrix: "fitz.Matrix") -> PixelBuffer:
    """Render one page into an owned RGB pixel buffer."""
    pix = page.get_pixmap(matrix=matrix, colorspace=fitz.csRGB, alpha=False)
    rows = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.stride)
    return rows[:, : pix.width * pix.n].reshape(pix.height, pix.width, pix.n).copy()


def rasterize(
    pdf_bytes: bytes,
    *,
    scale: float = DEFAULT_SCALE,
    quality: float = DEFAULT_QUALITY,
    max_pages: int = DEFAULT_MAX_PAGES,
    strict: bool = False,
    codec: Optional[Codec] = None,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> list[PageSlot]:
    """Render each page of a PDF to an encoded JPEG bitmap.

    Returns one slot per page for pages ``1..min(page_count, max_pages)``,
    in page order; a document with no pages gives an empty list.  A page
    that fails to render or encode becomes a ``PageUnavailable`` at its own
    index, so slot ``i`` is always page ``i + 1``.  Pass ``strict=True`` to
    raise ``PageUnavailableError`` instead.

    Args:
        pdf_bytes: Raw PDF bytes (no base64 / data-URL wrapping).
        scale:     Resolution multiplier over the native page size in points.
        quality:   JPEG quality in (0, 1].
        max_pages: Upper bound on pages processed.
        strict:    Fail the whole call on the first unrenderable page.
        codec:     Encoder; defaults to Pillow.
        cancel:    Checked before each page; set it to stop early.
        timeout:   Seconds from call start before stopping early.

    Raises:
        DecodeError:          the document cannot be opened.
        PageUnavailableError: a page failed and ``strict`` is set.
        RasterCancelled:      ``cancel`` was set or ``timeout`` elapsed.
    """
    if scale <= 0:
        raise ValueError("scale must be > 0")
    if not 0 < quality <= 1:
        raise ValueError("quality must be in (0, 1]")
    if max_pages < 1:
        raise ValueError("max_pages must be >= 1")

    codec = codec or get_default_codec()
    deadline = time.monotonic() + timeout if timeout is not None else None

    doc = _open(pdf_bytes)
    try:
        n = min(doc.page_count, max_pages)
        logger.debug("Rasterizing %d of %d page(s) at scale %.2f", n, doc.page_count, scale)
        matrix = fitz.Matrix(scale, scale)
        slots: list[PageSlot] = []

        for index in range(1, n + 1):
            if (cancel is not None and cancel.is_set()) or (
                deadline is not None and time.monotonic() >= deadline
            ):
                raise RasterCancelled(slots)

            try:
                pixels = _render_page(doc.load_page(index - 1), matrix)
                data = codec.encode(pixels, PAGE_FORMAT, quality)
            except (*MUPDF_ERRORS, OSError) as e:
                if strict:
                    raise PageUnavailableError(index, str(e)) from e
                logger.warning("Page %d unavailable: %s", index, e)
                slots.append(PageUnavailable(index=index, reason=str(e)))
                continue

            height, width = pixels.shape[:2]
            slots.append(
                PageBitmap(
                    index=index,
                    width=width,
                    height=height,
                    data=data,
                )
            )
            logger.debug("Page %d rendered (%dx%d)", index, width, height)

        return slots
    finally:
        doc.close()


def page_bitmaps(slots: list[PageSlot]) -> list[PageBitmap]:
    """The rendered pages only; each keeps its true page index."""
    return [s for s in slots if isinstance(s, PageBitmap)]
