"""
Page geometry sources for field bounds validation.

Field coordinates are PDF points measured from the top-left corner of the
page they sit on. A geometry source answers `page_dimensions(page_index)`;
page indexes are 0-based.
"""

import logging
from typing import List, Optional, Tuple

from django.conf import settings
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

logger = logging.getLogger(__name__)

US_LETTER = (612.0, 792.0)


def default_page_size() -> Tuple[float, float]:
    width, height = getattr(settings, 'SIGNFLOW_DEFAULT_PAGE_SIZE', US_LETTER)
    return float(width), float(height)


class StaticGeometry:
    """Same dimensions for every page, for callers that already know the size."""

    def __init__(self, width: Optional[float] = None, height: Optional[float] = None):
        default_width, default_height = default_page_size()
        self.width = float(width if width is not None else default_width)
        self.height = float(height if height is not None else default_height)

    def page_dimensions(self, page_index: int) -> Tuple[float, float]:
        return self.width, self.height

    def __repr__(self):
        return f'StaticGeometry({self.width:g}x{self.height:g})'


class PdfGeometry:
    """
    Page sizes read from a PDF's media boxes with PyPDF2.

    Pages the PDF does not have fall back to the configured default page size.
    """

    def __init__(self, page_sizes: List[Tuple[float, float]]):
        self.page_sizes = list(page_sizes)

    @classmethod
    def from_file(cls, source) -> 'PdfGeometry':
        """
        Args:
            source: path or binary file-like object holding a PDF

        Raises:
            PdfReadError: the source is not a readable PDF
        """
        reader = PdfReader(source)
        sizes = []
        for page in reader.pages:
            box = page.mediabox
            sizes.append((float(box.width), float(box.height)))
        return cls(sizes)

    @classmethod
    def for_document(cls, document_model):
        """
        Geometry for a stored Document.

        Documents without an attached PDF, or whose PDF cannot be read, are
        measured with StaticGeometry at the default page size.
        """
        pdf_file = getattr(document_model, 'file', None)
        if not pdf_file:
            return StaticGeometry()
        try:
            with pdf_file.open('rb') as handle:
                return cls.from_file(handle)
        except (OSError, PdfReadError) as e:
            logger.warning(f"Could not read page sizes for document {document_model.pk}: {e}")
            return StaticGeometry()

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    def page_dimensions(self, page_index: int) -> Tuple[float, float]:
        if 0 <= page_index < len(self.page_sizes):
            return self.page_sizes[page_index]
        return default_page_size()
