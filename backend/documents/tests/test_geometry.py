from io import BytesIO

import pytest
from django.core.files.base import ContentFile
from PyPDF2 import PdfWriter

from documents.services.geometry import PdfGeometry, StaticGeometry

from .factories import create_document


def pdf_bytes(*sizes):
    writer = PdfWriter()
    for width, height in sizes:
        writer.add_blank_page(width=width, height=height)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestStaticGeometry:

    def test_defaults_to_configured_page_size(self, settings):
        settings.SIGNFLOW_DEFAULT_PAGE_SIZE = (595, 842)
        assert StaticGeometry().page_dimensions(3) == (595.0, 842.0)

    def test_explicit_size(self):
        assert StaticGeometry(100, 200).page_dimensions(0) == (100.0, 200.0)


class TestPdfGeometry:

    def test_reads_each_page_size(self):
        geometry = PdfGeometry.from_file(BytesIO(pdf_bytes((612, 792), (842, 595))))

        assert geometry.page_count == 2
        assert geometry.page_dimensions(0) == (612.0, 792.0)
        assert geometry.page_dimensions(1) == (842.0, 595.0)

    def test_missing_page_uses_default(self, settings):
        settings.SIGNFLOW_DEFAULT_PAGE_SIZE = (612, 792)
        geometry = PdfGeometry([(100.0, 100.0)])
        assert geometry.page_dimensions(5) == (612.0, 792.0)

    def test_document_without_file(self):
        class Unsaved:
            pk = None
            file = None

        assert isinstance(PdfGeometry.for_document(Unsaved()), StaticGeometry)

    @pytest.mark.django_db
    def test_stored_document_pdf(self, settings, tmp_path):
        settings.MEDIA_ROOT = str(tmp_path)
        document = create_document()
        document.file.save('lease.pdf', ContentFile(pdf_bytes((300, 400), (300, 400), (300, 400))))
        document.refresh_from_db()

        geometry = PdfGeometry.for_document(document)

        assert document.page_count == 3
        assert geometry.page_dimensions(2) == (300.0, 400.0)
