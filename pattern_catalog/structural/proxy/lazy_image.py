"""
Virtual proxy: images load from disk only when first displayed.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)


class Image(ABC):
    @abstractmethod
    def display(self) -> str: ...

    @property
    @abstractmethod
    def filename(self) -> str: ...


class HighResolutionImage(Image):
    """Loads its pixels in the constructor."""

    loads = 0

    def __init__(self, filename: str):
        self._filename = filename
        simulate_latency_sync(500)
        HighResolutionImage.loads += 1
        self.size_bytes = 3_000_000 + len(filename) * 1000
        logger.info("Image loaded", filename=filename, size=self.size_bytes)

    @property
    def filename(self) -> str:
        return self._filename

    def display(self) -> str:
        return f"Displaying {self._filename} ({self.size_bytes / 1_000_000:.1f} MB)"


class LazyImageProxy(Image):
    def __init__(self, filename: str):
        self._filename = filename
        self._real: Optional[HighResolutionImage] = None

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def is_loaded(self) -> bool:
        return self._real is not None

    def display(self) -> str:
        if self._real is None:
            self._real = HighResolutionImage(self._filename)
        return self._real.display()


class Gallery:
    def __init__(self, images: List[Image]):
        self.images = images

    def thumbnails(self) -> List[str]:
        return [image.filename for image in self.images]

    def open(self, index: int) -> str:
        return self.images[index].display()


@demo(
    "proxy.lazy-image",
    pattern="Proxy",
    category=Category.STRUCTURAL,
    title="Deferred loading of large images",
)
def run_demo() -> None:
    HighResolutionImage.loads = 0
    gallery = Gallery([LazyImageProxy(f"holiday_{i:02d}.raw") for i in range(12)])
    print(f"Gallery with {len(gallery.thumbnails())} images ready; images loaded so far: {HighResolutionImage.loads}")

    print(gallery.open(3))
    print(gallery.open(3))
    print(gallery.open(7))
    loaded = [img.filename for img in gallery.images if img.is_loaded]
    print(f"Loaded on demand: {loaded} (total loads {HighResolutionImage.loads})")


if __name__ == "__main__":
    run_module(run_demo)
