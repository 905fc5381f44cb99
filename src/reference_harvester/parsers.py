"""Turning source documents into bibliography text for windowing."""
from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional

from xml.etree import ElementTree

logger = logging.getLogger(__name__)

_W = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"

# "References", "7. Bibliography", "IV Literature Cited:" on a line of their own
BIBLIOGRAPHY_HEADING = re.compile(
    r"^[ \t]*(?:(?:\d+|[ivxlc]+)\.?[ \t]+)?"
    r"(references(?:[ \t]+cited)?|bibliography|works[ \t]+cited|literature[ \t]+cited|sources)"
    r"[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
TRAILING_SECTION = re.compile(
    r"^[ \t]*(appendix|appendices|supplementary (?:material|information)|acknowledge?ments)\b.*$",
    re.IGNORECASE | re.MULTILINE,
)


def extract_bibliography(text: str) -> Optional[str]:
    """Return the text between the last bibliography heading and any trailing section.

    ``None`` when the document has no recognizable heading.
    """
    headings = list(BIBLIOGRAPHY_HEADING.finditer(text))
    if not headings:
        return None
    section = text[headings[-1].end():]
    trailing = TRAILING_SECTION.search(section)
    if trailing:
        section = section[: trailing.start()]
    return section.strip()


class DocumentParser:
    """Loads the text of a bibliography source by file extension."""

    def __init__(self) -> None:
        self.loaders: Dict[str, Callable[[Path], str]] = {
            ".docx": self.load_docx_text,
            ".pdf": self.load_pdf_text,
        }

    def load_docx_text(self, path: Path) -> str:
        with zipfile.ZipFile(path) as archive:
            root = ElementTree.fromstring(archive.read("word/document.xml"))
        paragraphs = []
        for para in root.iter(f"{_W}p"):
            chunks = []
            for node in para.iter():
                if node.tag == f"{_W}t" and node.text:
                    chunks.append(node.text)
                elif node.tag == f"{_W}tab":
                    chunks.append("\t")
                elif node.tag == f"{_W}br":
                    chunks.append("\n")
            paragraphs.append("".join(chunks))
        return "\n".join(paragraphs)

    def load_pdf_text(self, path: Path) -> str:
        try:
            from pypdf import PdfReader
        except ImportError as exc:  # pragma: no cover - dependency error path
            raise RuntimeError(
                "PDF support requires the 'pypdf' package. Install the 'pdf' extra."
            ) from exc

        reader = PdfReader(str(path))
        return "\n".join(filter(None, (page.extract_text() for page in reader.pages)))

    def load_text(self, file_path: str | Path) -> str:
        path = Path(file_path)
        loader = self.loaders.get(path.suffix.lower())
        if loader is None:
            return path.read_text(encoding="utf-8")
        logger.debug("Loading %s with %s", path, loader.__name__)
        return loader(path)

    def bibliography_text(self, file_path: str | Path) -> str:
        """The reference list of ``file_path``, or its whole text when no heading is found."""
        text = self.load_text(file_path)
        bibliography = extract_bibliography(text)
        if bibliography is None:
            logger.warning("No bibliography heading found in %s; using the whole text", file_path)
            return text
        return bibliography
