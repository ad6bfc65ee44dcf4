"""System font discovery and font loading for Pillow and ReportLab."""

import logging
import os
import sys
import threading
from typing import Dict, List, Optional

from PIL import ImageFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

logger = logging.getLogger(__name__)

# display name ("Inter Bold") -> file path
_font_index: Optional[Dict[str, str]] = None
_index_lock = threading.Lock()

# family+weight -> registered ReportLab font name
_pdf_fonts: Dict[str, str] = {}
_pdf_lock = threading.Lock()

_SKIPPED_SUBSTRINGS = ("emoji", "symbol", "icons", "mdl2", "dings")

_STYLE_SUFFIXES = (" Bold Italic", " Bold", " Italic", " Regular", " Light",
                   " Medium", " Thin", " Black", " SemiBold", " Semibold",
                   " ExtraBold", " ExtraLight", " Condensed", " Oblique")


def _font_dirs() -> List[str]:
    dirs = []
    bundled = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "fonts")
    if os.path.isdir(bundled):
        dirs.append(bundled)

    if sys.platform == "win32":
        windir = os.environ.get("WINDIR", r"C:\Windows")
        dirs.append(os.path.join(windir, "Fonts"))
        localappdata = os.environ.get("LOCALAPPDATA", "")
        if localappdata:
            dirs.append(os.path.join(localappdata, "Microsoft", "Windows", "Fonts"))
        return dirs

    for base in ("/usr/share/fonts", "/usr/local/share/fonts", "/Library/Fonts",
                 os.path.expanduser("~/.local/share/fonts"),
                 os.path.expanduser("~/.fonts")):
        # Linux keeps fonts in nested per-family folders
        for root, _, _ in os.walk(base):
            dirs.append(root)
    return dirs


def font_index() -> Dict[str, str]:
    """Scan font directories once and map "Family Style" names to files."""
    global _font_index
    with _index_lock:
        if _font_index is not None:
            return _font_index

        fonts: Dict[str, str] = {}
        for font_dir in _font_dirs():
            if not os.path.isdir(font_dir):
                continue
            for entry in os.scandir(font_dir):
                if not entry.is_file() or not entry.name.lower().endswith((".ttf", ".otf")):
                    continue
                try:
                    family, style = ImageFont.truetype(entry.path, size=12).getname()
                except OSError:
                    continue
                family = family or ""
                if not family or any(s in family.lower() for s in _SKIPPED_SUBSTRINGS):
                    continue
                if style and style.lower() != "regular":
                    fonts.setdefault(f"{family} {style}", entry.path)
                else:
                    fonts.setdefault(family, entry.path)

        logger.debug("Indexed %d system fonts", len(fonts))
        _font_index = dict(sorted(fonts.items()))
        return _font_index


def find_font_path(family: str, bold: bool = False) -> Optional[str]:
    """Best matching font file for a family, or None if nothing matches."""
    fonts = font_index()
    wanted = [f"{family} Bold", family] if bold else [family, f"{family} Regular"]

    lowered = {name.lower(): path for name, path in fonts.items()}
    for candidate in wanted:
        path = lowered.get(candidate.lower())
        if path:
            return path

    family_lower = family.lower()
    for name, path in fonts.items():
        if name.lower().startswith(family_lower):
            return path
    return None


def get_font_families() -> List[str]:
    families = set()
    for name in font_index():
        for suffix in _STYLE_SUFFIXES:
            if name.endswith(suffix):
                name = name[:-len(suffix)]
                break
        if name.strip():
            families.add(name.strip())
    return sorted(families)


def load_pil_font(family: str, bold: bool, size_px: float) -> ImageFont.ImageFont:
    """Pillow font at a pixel size, falling back to DejaVu then the built-in font."""
    size = max(1, int(round(size_px)))
    for path in (find_font_path(family, bold), find_font_path("DejaVu Sans", bold)):
        if path:
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                logger.debug("Could not load font file %s", path)
    return ImageFont.load_default(size)


def pdf_font_name(family: str, bold: bool) -> str:
    """Register the family with ReportLab on first use; Helvetica if unavailable."""
    key = f"{family}|{'bold' if bold else 'regular'}"
    with _pdf_lock:
        if key in _pdf_fonts:
            return _pdf_fonts[key]

        name = "Helvetica-Bold" if bold else "Helvetica"
        path = find_font_path(family, bold)
        if path and path.lower().endswith(".ttf"):
            registered = f"CardStudio-{family.replace(' ', '')}-{'Bold' if bold else 'Regular'}"
            try:
                pdfmetrics.registerFont(TTFont(registered, path))
                name = registered
            except Exception as e:  # TTFont raises bare TTFError/KeyError on odd files
                logger.warning("Font %s (%s) not usable in PDF: %s", family, path, e)
        _pdf_fonts[key] = name
        return name
