import sys
import zipfile
from pathlib import Path
from typing import List
from xml.sax.saxutils import escape

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import pytest

from reference_harvester.models import Window


def _build_minimal_docx(paragraphs: List[str]) -> bytes:
    body = "".join(f"<w:p><w:r><w:t>{escape(para)}</w:t></w:r></w:p>" for para in paragraphs)
    document_xml = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )
    content_types = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Default Extension="xml" ContentType="application/xml"/>'
        "</Types>"
    )
    from io import BytesIO

    buffer = BytesIO()
    with zipfile.ZipFile(buffer, mode="w") as archive:
        archive.writestr("[Content_Types].xml", content_types)
        archive.writestr("word/document.xml", document_xml)
    return buffer.getvalue()


@pytest.fixture()
def sample_docx_path(tmp_path: Path) -> Path:
    """A small manuscript with a body paragraph and a reference list."""

    paragraphs = [
        "Dummy manuscript discussing windowed citation extraction (Doe, 2021).",
        "References",
        "1. Doe J. Sample article title. Journal of Testing. 2021;10(2):123-130. doi:10.1234/jt.2021.456",
        "2. Smith A, Lee B. Another study on testing. Proc Ref Conf. 2020.",
    ]
    docx_path = tmp_path / "sample_manuscript.docx"
    docx_path.write_bytes(_build_minimal_docx(paragraphs))
    return docx_path


@pytest.fixture()
def make_windows():
    def _make(count: int, size: int = 10) -> List[Window]:
        return [
            Window(index=i, start=i * size, end=(i + 1) * size, length=size, text=f"window {i}")
            for i in range(count)
        ]

    return _make
