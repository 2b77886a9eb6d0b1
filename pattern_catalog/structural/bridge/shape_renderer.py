"""
Shape/renderer bridge.

Shapes know geometry, renderers know output formats. Any shape can be
drawn with any renderer, and the renderer can be swapped at runtime.
"""

import math
from abc import ABC, abstractmethod

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Renderer(ABC):
    name = ""

    @abstractmethod
    def render_circle(self, x: float, y: float, radius: float) -> str: ...

    @abstractmethod
    def render_rectangle(self, x: float, y: float, width: float, height: float) -> str: ...

    @abstractmethod
    def render_triangle(self, points: list) -> str: ...


class SvgRenderer(Renderer):
    name = "svg"

    def render_circle(self, x, y, radius):
        return f'<circle cx="{x:g}" cy="{y:g}" r="{radius:g}" />'

    def render_rectangle(self, x, y, width, height):
        return f'<rect x="{x:g}" y="{y:g}" width="{width:g}" height="{height:g}" />'

    def render_triangle(self, points):
        coords = " ".join(f"{px:g},{py:g}" for px, py in points)
        return f'<polygon points="{coords}" />'


class CanvasRenderer(Renderer):
    name = "canvas"

    def render_circle(self, x, y, radius):
        return f"ctx.beginPath(); ctx.arc({x:g}, {y:g}, {radius:g}, 0, 2 * Math.PI); ctx.stroke();"

    def render_rectangle(self, x, y, width, height):
        return f"ctx.strokeRect({x:g}, {y:g}, {width:g}, {height:g});"

    def render_triangle(self, points):
        (x1, y1), (x2, y2), (x3, y3) = points
        return (
            f"ctx.beginPath(); ctx.moveTo({x1:g}, {y1:g}); ctx.lineTo({x2:g}, {y2:g}); "
            f"ctx.lineTo({x3:g}, {y3:g}); ctx.closePath(); ctx.stroke();"
        )


class PdfRenderer(Renderer):
    name = "pdf"

    def render_circle(self, x, y, radius):
        return f"{x:g} {y:g} {radius:g} 0 360 arc S"

    def render_rectangle(self, x, y, width, height):
        return f"{x:g} {y:g} {width:g} {height:g} re S"

    def render_triangle(self, points):
        (x1, y1), (x2, y2), (x3, y3) = points
        return f"{x1:g} {y1:g} m {x2:g} {y2:g} l {x3:g} {y3:g} l h S"


class Shape(ABC):
    def __init__(self, renderer: Renderer, x: float = 0, y: float = 0):
        self.renderer = renderer
        self.x = x
        self.y = y

    def set_renderer(self, renderer: Renderer) -> None:
        self.renderer = renderer

    def resize(self, factor: float) -> None:
        if factor <= 0:
            raise ValidationException("factor", factor, "must be positive")
        self._scale(factor)

    @abstractmethod
    def draw(self) -> str: ...

    @abstractmethod
    def area(self) -> float: ...

    @abstractmethod
    def _scale(self, factor: float) -> None: ...


class Circle(Shape):
    def __init__(self, renderer: Renderer, x: float, y: float, radius: float):
        super().__init__(renderer, x, y)
        self.radius = radius

    def draw(self) -> str:
        return self.renderer.render_circle(self.x, self.y, self.radius)

    def area(self) -> float:
        return math.pi * self.radius ** 2

    def _scale(self, factor: float) -> None:
        self.radius *= factor


class Rectangle(Shape):
    def __init__(self, renderer: Renderer, x: float, y: float, width: float, height: float):
        super().__init__(renderer, x, y)
        self.width = width
        self.height = height

    def draw(self) -> str:
        return self.renderer.render_rectangle(self.x, self.y, self.width, self.height)

    def area(self) -> float:
        return self.width * self.height

    def _scale(self, factor: float) -> None:
        self.width *= factor
        self.height *= factor


class Triangle(Shape):
    def __init__(self, renderer: Renderer, x: float, y: float, base: float, height: float):
        super().__init__(renderer, x, y)
        self.base = base
        self.height = height

    def points(self) -> list:
        return [(self.x, self.y + self.height), (self.x + self.base, self.y + self.height), (self.x + self.base / 2, self.y)]

    def draw(self) -> str:
        return self.renderer.render_triangle(self.points())

    def area(self) -> float:
        return self.base * self.height / 2

    def _scale(self, factor: float) -> None:
        self.base *= factor
        self.height *= factor


@demo(
    "bridge.shape-renderer",
    pattern="Bridge",
    category=Category.STRUCTURAL,
    title="Shapes drawn through interchangeable renderers",
)
def run_demo() -> None:
    renderers = [SvgRenderer(), CanvasRenderer(), PdfRenderer()]
    shapes = [
        Circle(renderers[0], 50, 50, 20),
        Rectangle(renderers[0], 10, 10, 80, 40),
        Triangle(renderers[0], 0, 0, 30, 20),
    ]

    for renderer in renderers:
        print(f"\n{renderer.name}:")
        for shape in shapes:
            shape.set_renderer(renderer)
            print(f"  {shape.draw()}")

    shapes[0].resize(1.5)
    print(f"\nResized circle: {shapes[0].draw()} area={shapes[0].area():.1f}")


if __name__ == "__main__":
    run_module(run_demo)
