"""
Exporting a structured document to HTML and Markdown, and counting its
words, without the element classes knowing about any output format.
"""

import html
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class DocumentVisitor(ABC):
    @abstractmethod
    def visit_heading(self, element: "Heading") -> str: ...

    @abstractmethod
    def visit_paragraph(self, element: "Paragraph") -> str: ...

    @abstractmethod
    def visit_code_block(self, element: "CodeBlock") -> str: ...

    @abstractmethod
    def visit_list(self, element: "ListElement") -> str: ...


@dataclass
class Heading:
    text: str
    level: int = 1

    def __post_init__(self) -> None:
        if not 1 <= self.level <= 6:
            raise ValidationException("level", self.level, "heading level must be 1-6")

    def accept(self, visitor: DocumentVisitor) -> str:
        return visitor.visit_heading(self)


@dataclass
class Paragraph:
    text: str

    def accept(self, visitor: DocumentVisitor) -> str:
        return visitor.visit_paragraph(self)


@dataclass
class CodeBlock:
    code: str
    language: str = ""

    def accept(self, visitor: DocumentVisitor) -> str:
        return visitor.visit_code_block(self)


@dataclass
class ListElement:
    items: List[str]
    ordered: bool = False

    def accept(self, visitor: DocumentVisitor) -> str:
        return visitor.visit_list(self)


class Document:
    def __init__(self, *elements) -> None:
        self.elements = list(elements)

    def export(self, visitor: DocumentVisitor, separator: str = "\n") -> str:
        return separator.join(element.accept(visitor) for element in self.elements)


class HtmlExporter(DocumentVisitor):
    def visit_heading(self, element: Heading) -> str:
        return f"<h{element.level}>{html.escape(element.text)}</h{element.level}>"

    def visit_paragraph(self, element: Paragraph) -> str:
        return f"<p>{html.escape(element.text)}</p>"

    def visit_code_block(self, element: CodeBlock) -> str:
        cls = f' class="language-{element.language}"' if element.language else ""
        return f"<pre><code{cls}>{html.escape(element.code)}</code></pre>"

    def visit_list(self, element: ListElement) -> str:
        tag = "ol" if element.ordered else "ul"
        items = "".join(f"<li>{html.escape(item)}</li>" for item in element.items)
        return f"<{tag}>{items}</{tag}>"


class MarkdownExporter(DocumentVisitor):
    def visit_heading(self, element: Heading) -> str:
        return f"{'#' * element.level} {element.text}\n"

    def visit_paragraph(self, element: Paragraph) -> str:
        return f"{element.text}\n"

    def visit_code_block(self, element: CodeBlock) -> str:
        return f"```{element.language}\n{element.code}\n```\n"

    def visit_list(self, element: ListElement) -> str:
        lines = [
            f"{i}. {item}" if element.ordered else f"- {item}"
            for i, item in enumerate(element.items, start=1)
        ]
        return "\n".join(lines) + "\n"


class WordCountVisitor(DocumentVisitor):
    """Counts prose words; code blocks are not counted."""

    def __init__(self) -> None:
        self.words = 0

    def _count(self, text: str) -> str:
        self.words += len(text.split())
        return ""

    def visit_heading(self, element: Heading) -> str:
        return self._count(element.text)

    def visit_paragraph(self, element: Paragraph) -> str:
        return self._count(element.text)

    def visit_code_block(self, element: CodeBlock) -> str:
        return ""

    def visit_list(self, element: ListElement) -> str:
        for item in element.items:
            self._count(item)
        return ""


def sample_document() -> Document:
    return Document(
        Heading("Getting started"),
        Paragraph("Install the package & run the demos from the command line."),
        CodeBlock("pip install -e .\npattern-catalog list", "bash"),
        Heading("Categories", 2),
        ListElement(["Creational", "Structural", "Behavioral", "Functional"]),
    )


@demo(
    "visitor.document-export",
    pattern="Visitor",
    category=Category.BEHAVIORAL,
    title="HTML and Markdown export plus word count for one document",
)
def run_demo() -> None:
    document = sample_document()
    print("HTML:")
    print(document.export(HtmlExporter()))
    print("\nMarkdown:")
    print(document.export(MarkdownExporter()))
    counter = WordCountVisitor()
    document.export(counter)
    print(f"Word count (prose only): {counter.words}")


if __name__ == "__main__":
    run_module(run_demo)
