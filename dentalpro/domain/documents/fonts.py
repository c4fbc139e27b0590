"""
Fonts and right-to-left shaping for generated PDFs.

The built-in PDF fonts have no Arabic glyphs, so documents are set in a
TrueType font with Arabic coverage (Noto Naskh Arabic, or DejaVu Sans when
that is what the host has). Arabic runs are reshaped into their joined
presentation forms and reordered for display before reportlab draws them,
since reportlab lays text out strictly left to right.
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import NamedTuple, Optional
from xml.sax.saxutils import escape

import arabic_reshaper
from bidi.algorithm import get_display
from reportlab.lib.fonts import addMapping
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

logger = logging.getLogger(__name__)

FONT_DIR = Path(os.getenv("PDF_FONT_DIR", Path(__file__).resolve().parent / "assets"))

REGULAR_CANDIDATES = [
    os.getenv("PDF_ARABIC_FONT"),
    str(FONT_DIR / "NotoNaskhArabic-Regular.ttf"),
    "/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf",
    "/usr/share/fonts/noto/NotoNaskhArabic-Regular.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
]
BOLD_CANDIDATES = [
    os.getenv("PDF_ARABIC_FONT_BOLD"),
    str(FONT_DIR / "NotoNaskhArabic-Bold.ttf"),
    "/usr/share/fonts/truetype/noto/NotoNaskhArabic-Bold.ttf",
    "/usr/share/fonts/noto/NotoNaskhArabic-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
]

ARABIC_FONT = "DentalProArabic"
ARABIC_FONT_BOLD = "DentalProArabic-Bold"

ARABIC_CHARS = re.compile("[\u0600-\u06ff\u0750-\u077f\u08a0-\u08ff\ufb50-\ufdff\ufe70-\ufeff]")


class PDFFonts(NamedTuple):
    regular: str
    bold: str
    supports_arabic: bool


def _first_existing(candidates: list[Optional[str]]) -> Optional[str]:
    for path in candidates:
        if path and Path(path).is_file():
            return path
    return None


@lru_cache(maxsize=1)
def get_pdf_fonts() -> PDFFonts:
    """Register the Arabic-capable font family once per process"""
    regular_path = _first_existing(REGULAR_CANDIDATES)
    if not regular_path:
        logger.warning(
            "⚠️ No Arabic TrueType font found (set PDF_ARABIC_FONT); Arabic text will not render"
        )
        return PDFFonts("Helvetica", "Helvetica-Bold", False)

    bold_path = _first_existing(BOLD_CANDIDATES) or regular_path

    pdfmetrics.registerFont(TTFont(ARABIC_FONT, regular_path))
    pdfmetrics.registerFont(TTFont(ARABIC_FONT_BOLD, bold_path))
    # <b> and <i> markup inside paragraphs resolves through the family mapping
    addMapping(ARABIC_FONT, 0, 0, ARABIC_FONT)
    addMapping(ARABIC_FONT, 1, 0, ARABIC_FONT_BOLD)
    addMapping(ARABIC_FONT, 0, 1, ARABIC_FONT)
    addMapping(ARABIC_FONT, 1, 1, ARABIC_FONT_BOLD)

    logger.info(f"🔤 PDF font registered from {regular_path}")
    return PDFFonts(ARABIC_FONT, ARABIC_FONT_BOLD, True)


def has_arabic(text: str) -> bool:
    return bool(ARABIC_CHARS.search(text or ""))


def shape_text(text) -> str:
    """Joined, display-ordered form of `text`; non-Arabic text is returned unchanged"""
    text = "" if text is None else str(text)
    if not has_arabic(text):
        return text
    return get_display(arabic_reshaper.reshape(text))


def paragraph_text(text) -> str:
    """Shaped and XML-escaped, ready for a reportlab Paragraph"""
    return escape(shape_text(text))
