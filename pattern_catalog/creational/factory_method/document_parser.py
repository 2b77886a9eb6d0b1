"""
Document parser factory.

The MIME type of a path selects a parser creator. Structured formats
(JSON, XML, plain text) are parsed for real from an in-memory file store;
binary office formats return simulated extraction results.
"""

import html
import json
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...exceptions import UnsupportedTypeException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency

logger = get_logger(__name__)

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/plain",
}


def detect_mime_type(path: str) -> str:
    """Guess the MIME type from the file extension."""
    return MIME_TYPES.get(PurePosixPath(path).suffix.lower(), "application/octet-stream")


@dataclass
class ParsedDocument:
    title: str
    text: str
    metadata: Dict[str, Any]
    tables: List[List[List[Any]]] = field(default_factory=list)
    links: List[Tuple[str, str]] = field(default_factory=list)

    def search(self, query: str, context: int = 30) -> List[Dict[str, Any]]:
        """Case-insensitive search returning each hit with surrounding text."""
        hits = []
        haystack, needle = self.text.lower(), query.lower()
        position = haystack.find(needle)
        while needle and position != -1:
            start, end = max(0, position - context), position + len(needle) + context
            hits.append({"position": position, "context": self.text[start:end].strip()})
            position = haystack.find(needle, position + len(needle))
        return hits

    def export(self, fmt: str) -> str:
        if fmt == "txt":
            return self.text
        if fmt == "json":
            return json.dumps(
                {"title": self.title, "text": self.text, "metadata": self.metadata}, indent=2, default=str
            )
        if fmt == "html":
            return (
                f"<html><head><title>{html.escape(self.title)}</title></head>"
                f"<body><pre>{html.escape(self.text)}</pre></body></html>"
            )
        raise UnsupportedTypeException("export format", fmt, ["txt", "json", "html"])


class DocumentParser(ABC):
    """Product interface."""

    extensions: Tuple[str, ...] = ()
    format_name = "document"

    def validate_file(self, path: str, content: Optional[str]) -> bool:
        return PurePosixPath(path).suffix.lower() in self.extensions and content is not None

    @abstractmethod
    async def parse(self, path: str, content: str) -> ParsedDocument:
        """Parse ``content`` read from ``path``."""

    def _metadata(self, path: str, text: str, **extra: Any) -> Dict[str, Any]:
        return {
            "format": self.format_name,
            "file_name": PurePosixPath(path).name,
            "word_count": len(text.split()),
            **extra,
        }


class PdfParser(DocumentParser):
    extensions = (".pdf",)
    format_name = "PDF"

    async def parse(self, path: str, content: str) -> ParsedDocument:
        await simulate_latency(300)
        pages = [page.strip() for page in content.split("\f")]
        text = "\n".join(pages)
        return ParsedDocument(
            title=PurePosixPath(path).stem.replace("-", " ").title(),
            text=text,
            metadata=self._metadata(path, text, page_count=len(pages)),
        )


class ExcelParser(DocumentParser):
    extensions = (".xlsx",)
    format_name = "Excel"

    async def parse(self, path: str, content: str) -> ParsedDocument:
        # Simulated workbook: one sheet, comma separated rows
        await simulate_latency(200)
        rows = [line.split(",") for line in content.splitlines() if line.strip()]
        text = "\n".join(" | ".join(row) for row in rows)
        return ParsedDocument(
            title=PurePosixPath(path).stem,
            text=text,
            metadata=self._metadata(path, text, sheet_count=1, row_count=len(rows)),
            tables=[rows],
        )


class WordParser(DocumentParser):
    extensions = (".docx",)
    format_name = "Word"

    async def parse(self, path: str, content: str) -> ParsedDocument:
        await simulate_latency(250)
        lines = content.splitlines()
        title = lines[0].lstrip("# ").strip() if lines else PurePosixPath(path).stem
        return ParsedDocument(title=title, text=content, metadata=self._metadata(path, content))


class JsonParser(DocumentParser):
    extensions = (".json",)
    format_name = "JSON"

    async def parse(self, path: str, content: str) -> ParsedDocument:
        await simulate_latency(20)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValidationException("content", path, f"invalid JSON: {e.msg}") from e
        title = str(data.get("title", PurePosixPath(path).stem)) if isinstance(data, dict) else PurePosixPath(path).stem
        text = json.dumps(data, indent=2)
        keys = list(data) if isinstance(data, dict) else []
        return ParsedDocument(title=title, text=text, metadata=self._metadata(path, text, top_level_keys=keys))


class XmlParser(DocumentParser):
    extensions = (".xml",)
    format_name = "XML"

    async def parse(self, path: str, content: str) -> ParsedDocument:
        await simulate_latency(30)
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise ValidationException("content", path, f"invalid XML: {e}") from e
        title_node = root.find(".//title")
        text = " ".join(t.strip() for t in root.itertext() if t.strip())
        links = [(el.text or "", el.get("href", "")) for el in root.iter("link")]
        return ParsedDocument(
            title=title_node.text if title_node is not None and title_node.text else root.tag,
            text=text,
            metadata=self._metadata(path, text, root_tag=root.tag, element_count=len(list(root.iter()))),
            links=links,
        )


class TextParser(DocumentParser):
    extensions = (".txt", ".md")
    format_name = "Text"

    async def parse(self, path: str, content: str) -> ParsedDocument:
        await simulate_latency(5)
        first_line = content.splitlines()[0] if content else ""
        return ParsedDocument(
            title=first_line.lstrip("# ").strip() or PurePosixPath(path).stem,
            text=content,
            metadata=self._metadata(path, content, line_count=len(content.splitlines())),
        )


class DocumentParserFactory(ABC):
    """Creator: subclasses choose the parser."""

    @abstractmethod
    def create_parser(self) -> DocumentParser:
        """Factory method."""

    async def parse(self, path: str, content: Optional[str]) -> ParsedDocument:
        parser = self.create_parser()
        if not parser.validate_file(path, content):
            raise ValidationException("file", path, "invalid or unreadable file")
        logger.debug("Parsing document", path=path, parser=parser.format_name)
        assert content is not None
        return await parser.parse(path, content)

    @staticmethod
    def for_mime_type(mime_type: str) -> "DocumentParserFactory":
        factory_cls = _FACTORIES.get(mime_type.lower())
        if factory_cls is None:
            raise UnsupportedTypeException("document type", mime_type, _FACTORIES.keys())
        return factory_cls()


class PdfParserFactory(DocumentParserFactory):
    def create_parser(self) -> DocumentParser:
        return PdfParser()


class ExcelParserFactory(DocumentParserFactory):
    def create_parser(self) -> DocumentParser:
        return ExcelParser()


class WordParserFactory(DocumentParserFactory):
    def create_parser(self) -> DocumentParser:
        return WordParser()


class JsonParserFactory(DocumentParserFactory):
    def create_parser(self) -> DocumentParser:
        return JsonParser()


class XmlParserFactory(DocumentParserFactory):
    def create_parser(self) -> DocumentParser:
        return XmlParser()


class TextParserFactory(DocumentParserFactory):
    def create_parser(self) -> DocumentParser:
        return TextParser()


_FACTORIES = {
    MIME_TYPES[".pdf"]: PdfParserFactory,
    MIME_TYPES[".xlsx"]: ExcelParserFactory,
    MIME_TYPES[".docx"]: WordParserFactory,
    MIME_TYPES[".json"]: JsonParserFactory,
    MIME_TYPES[".xml"]: XmlParserFactory,
    "text/xml": XmlParserFactory,
    MIME_TYPES[".txt"]: TextParserFactory,
}


class DocumentProcessingService:
    """Parses documents from an in-memory file store."""

    def __init__(self, files: Mapping[str, str]):
        self.files = files
        self.failures: Dict[str, str] = {}

    async def process_document(self, path: str) -> ParsedDocument:
        factory = DocumentParserFactory.for_mime_type(detect_mime_type(path))
        return await factory.parse(path, self.files.get(path))

    async def batch_process(self, paths: List[str]) -> List[ParsedDocument]:
        """Parse every path, recording failures instead of stopping."""
        documents = []
        for path in paths:
            try:
                documents.append(await self.process_document(path))
            except (UnsupportedTypeException, ValidationException) as e:
                logger.warning("Document skipped", path=path, error=e.message)
                self.failures[path] = e.message
        return documents

    @staticmethod
    def search(documents: List[ParsedDocument], query: str) -> List[Tuple[str, str]]:
        """Return ``(title, line)`` for every line containing ``query``."""
        needle = query.lower()
        return [
            (doc.title, line.strip())
            for doc in documents
            for line in doc.text.splitlines()
            if needle in line.lower()
        ]


SAMPLE_FILES = {
    "reports/annual-report.pdf": "Annual Report 2024\nRevenue grew 12%.\fOutlook\nRevenue target raised.",
    "data/sales.xlsx": "region,q1,q2\nnorth,120,140\nsouth,90,115",
    "docs/handbook.docx": "# Employee Handbook\nWelcome aboard. Revenue sharing applies after one year.",
    "config/app.json": '{"title": "App Config", "debug": false, "workers": 4}',
    "feeds/news.xml": '<feed><title>News</title><item>Revenue up</item><link href="https://example.com">More</link></feed>',
    "notes/todo.txt": "Todo\nfile expenses\nreview revenue dashboard",
    "images/logo.png": "binary",
}


@demo(
    "factory-method.document-parser",
    pattern="Factory Method",
    category=Category.CREATIONAL,
    title="Parsers chosen by MIME type",
)
async def run_demo() -> None:
    service = DocumentProcessingService(SAMPLE_FILES)
    documents = await service.batch_process(list(SAMPLE_FILES) + ["missing/file.txt"])

    for doc in documents:
        print(f"{doc.metadata['format']:>6}: {doc.title!r} ({doc.metadata['word_count']} words)")
    for path, reason in service.failures.items():
        print(f"  skipped {path}: {reason}")

    print("\nSearch for 'revenue':")
    for title, line in service.search(documents, "revenue"):
        print(f"  [{title}] {line}")


if __name__ == "__main__":
    run_module(run_demo)
