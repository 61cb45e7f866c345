"""
Report preview: pull the text out of a PDF and cut it into sections.

The storefront shows the opening of a report split into four named
sections.  Each section is a window of at most ``SECTION_LENGTH``
characters, shortened to end on the last full stop inside the window
so that no section stops mid-sentence.
"""

import io
from typing import List, Tuple

from pypdf import PdfReader
from pypdf.errors import PyPdfError

SECTION_TITLES = ("Introduction", "Market Overview", "Market Analysis", "Key Findings")
SECTION_LENGTH = 2500


class PreviewError(Exception):
    """The stored file could not be read as a PDF."""


def extract_pdf_text(content: bytes) -> Tuple[str, int]:
    """Return the concatenated page text and the page count of a PDF."""
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError) as exc:
        raise PreviewError(str(exc)) from exc
    return "\n".join(pages), len(pages)


def split_into_sections(text: str) -> List[dict]:
    """Split ``text`` into at most four titled sections.

    Each section takes up to 2500 characters of what is left, trimmed,
    and is cut back to just after its last ``.`` when it has one.  The
    rest of the text, trimmed again, feeds the next section.  Splitting
    stops as soon as nothing is left, so short documents produce fewer
    than four sections.
    """
    sections: List[dict] = []
    remaining = text.strip()
    for title in SECTION_TITLES:
        window = remaining[:SECTION_LENGTH].strip()
        last_period = window.rfind(".")
        if last_period != -1:
            window = window[: last_period + 1]
        sections.append({"title": title, "content": window})
        remaining = remaining[len(window):].strip()
        if not remaining:
            break
    return sections
