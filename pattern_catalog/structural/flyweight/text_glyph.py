"""
Text glyph flyweight: one ``Glyph`` per (char, font, size), positions are extrinsic.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class Glyph:
    char: str
    font: str
    size: int

    @property
    def width(self) -> float:
        return self.size * (0.3 if self.char == " " else 0.6)


class GlyphFactory:
    def __init__(self) -> None:
        self._glyphs: Dict[Tuple[str, str, int], Glyph] = {}

    def get(self, char: str, font: str, size: int) -> Glyph:
        key = (char, font, size)
        if key not in self._glyphs:
            self._glyphs[key] = Glyph(char, font, size)
        return self._glyphs[key]

    def __len__(self) -> int:
        return len(self._glyphs)


@dataclass
class PositionedGlyph:
    glyph: Glyph
    x: float
    line: int


class Document:
    def __init__(self, factory: GlyphFactory = None, line_width: float = 400):
        self.factory = factory or GlyphFactory()
        self.line_width = line_width
        self.glyphs: List[PositionedGlyph] = []
        self._x = 0.0
        self._line = 0

    def type(self, text: str, font: str = "Helvetica", size: int = 12) -> None:
        for char in text:
            if char == "\n":
                self._newline()
                continue
            glyph = self.factory.get(char, font, size)
            if self._x + glyph.width > self.line_width:
                self._newline()
            self.glyphs.append(PositionedGlyph(glyph, self._x, self._line))
            self._x += glyph.width

    def render(self) -> str:
        lines: Dict[int, List[str]] = {}
        for positioned in self.glyphs:
            lines.setdefault(positioned.line, []).append(positioned.glyph.char)
        return "\n".join("".join(lines.get(i, [])) for i in range(self._line + 1))

    def get_stats(self) -> Dict[str, float]:
        characters = len(self.glyphs)
        unique = len(self.factory)
        return {
            "characters": characters,
            "unique_glyphs": unique,
            "sharing_ratio": round(characters / unique, 2) if unique else 0.0,
        }

    def _newline(self) -> None:
        self._line += 1
        self._x = 0.0


@demo(
    "flyweight.text-glyph",
    pattern="Flyweight",
    category=Category.STRUCTURAL,
    title="Interned glyphs in a text layout",
)
def run_demo() -> None:
    doc = Document(line_width=240)
    doc.type("Flyweight Pattern\n", font="Georgia", size=18)
    doc.type("The quick brown fox jumps over the lazy dog. " * 3)
    print(doc.render())
    print(f"\nStats: {doc.get_stats()}")


if __name__ == "__main__":
    run_module(run_demo)
