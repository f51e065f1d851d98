"""Shared fixtures for the test suite.

All fixtures here produce real files / real bytes so tests exercise actual
code paths rather than hand-crafted stubs.
"""

import io
from pathlib import Path

import fitz  # PyMuPDF
import pytest
from click.testing import CliRunner
from PIL import Image


def make_png(pixels: list[list[tuple]], mode: str = "RGB") -> bytes:
    """Build a PNG from rows of pixel tuples."""
    height, width = len(pixels), len(pixels[0])
    img = Image.new(mode, (width, height))
    for y, row in enumerate(pixels):
        for x, px in enumerate(row):
            img.putpixel((x, y), px)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_pdf_with_pages(sizes: list[tuple[float, float]]) -> bytes:
    """A PDF with one blank page per (width, height) in points."""
    doc = fitz.open()
    for width, height in sizes:
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


# A well-formed document whose page tree is empty.
ZERO_PAGE_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
    b"2 0 obj\n<< /Type /Pages /Count 0 /Kids [] >>\nendobj\n"
    b"trailer\n<< /Root 1 0 R >>\n%%EOF\n"
)


def make_pdf(pages: int = 1, width: float = 595, height: float = 842, text: bool = True) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        if text:
            page.insert_text((72, 100), f"Page {i + 1} content")
    data = doc.tobytes()
    doc.close()
    return data


# ── CLI runner ─────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# ── Image fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def png_bytes() -> bytes:
    """A real, valid 10×10 red PNG image as raw bytes."""
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color=(255, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def grey_png_bytes() -> bytes:
    """A 10×10 mid-grey PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color=(128, 128, 128)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_file(tmp_path: Path, grey_png_bytes: bytes) -> Path:
    """The grey PNG written to a temporary file on disk."""
    path = tmp_path / "test.png"
    path.write_bytes(grey_png_bytes)
    return path


# ── PDF fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def single_page_pdf_bytes() -> bytes:
    """A real single-page A4 PDF containing a text line."""
    return make_pdf(pages=1)


@pytest.fixture
def multi_page_pdf_bytes() -> bytes:
    """A real 3-page PDF with distinct text on each page."""
    return make_pdf(pages=3)


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    """A single, completely white 200×100 pt page."""
    return make_pdf(pages=1, width=200, height=100, text=False)


@pytest.fixture
def single_page_pdf(tmp_path: Path, single_page_pdf_bytes: bytes) -> Path:
    path = tmp_path / "single.pdf"
    path.write_bytes(single_page_pdf_bytes)
    return path


@pytest.fixture
def multi_page_pdf(tmp_path: Path, multi_page_pdf_bytes: bytes) -> Path:
    path = tmp_path / "multi.pdf"
    path.write_bytes(multi_page_pdf_bytes)
    return path
