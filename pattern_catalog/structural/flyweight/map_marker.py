"""
Map marker flyweight.

Marker styles are shared per category; each marker keeps only its own
coordinates and label. Proximity search uses the haversine distance.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class MarkerStyle:
    icon: str
    color: str
    size: int


_CATEGORY_STYLES = {
    "restaurant": ("fork-knife", "#e74c3c", 24),
    "hotel": ("bed", "#3498db", 28),
    "museum": ("column", "#8e44ad", 24),
    "park": ("tree", "#27ae60", 20),
}


class MarkerStyleFactory:
    def __init__(self) -> None:
        self._styles: Dict[str, MarkerStyle] = {}

    def for_category(self, category: str) -> MarkerStyle:
        if category not in _CATEGORY_STYLES:
            raise UnsupportedTypeException("marker category", category, _CATEGORY_STYLES.keys())
        if category not in self._styles:
            self._styles[category] = MarkerStyle(*_CATEGORY_STYLES[category])
        return self._styles[category]

    def count(self) -> int:
        return len(self._styles)


@dataclass
class MapMarker:
    lat: float
    lon: float
    label: str
    style: MarkerStyle


def haversine_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


class MapLayer:
    def __init__(self) -> None:
        self.styles = MarkerStyleFactory()
        self.markers: List[MapMarker] = []

    def add(self, lat: float, lon: float, label: str, category: str) -> MapMarker:
        marker = MapMarker(lat, lon, label, self.styles.for_category(category))
        self.markers.append(marker)
        return marker

    def find_nearby(self, lat: float, lon: float, radius_km: float) -> List[Tuple[MapMarker, float]]:
        """Markers within ``radius_km``, nearest first, with their distance."""
        hits = []
        for marker in self.markers:
            distance = haversine_km((lat, lon), (marker.lat, marker.lon))
            if distance <= radius_km:
                hits.append((marker, round(distance, 3)))
        return sorted(hits, key=lambda hit: hit[1])


BERLIN_POIS = [
    (52.5163, 13.3777, "Brandenburg Gate", "museum"),
    (52.5208, 13.4094, "Alexanderplatz Hotel", "hotel"),
    (52.5145, 13.3501, "Tiergarten", "park"),
    (52.5219, 13.4132, "Curry 36", "restaurant"),
    (52.5169, 13.4019, "Museum Island", "museum"),
    (52.4751, 13.4040, "Tempelhofer Feld", "park"),
]


@demo(
    "flyweight.map-marker",
    pattern="Flyweight",
    category=Category.STRUCTURAL,
    title="Shared marker styles with haversine proximity search",
)
def run_demo() -> None:
    layer = MapLayer()
    for lat, lon, label, category in BERLIN_POIS:
        layer.add(lat, lon, label, category)

    print(f"{len(layer.markers)} markers use {layer.styles.count()} shared styles")
    print("\nWithin 1.5 km of Museum Island:")
    for marker, distance in layer.find_nearby(52.5169, 13.4019, 1.5):
        print(f"  {marker.label:<22} {distance:.2f} km  [{marker.style.icon} {marker.style.color}]")


if __name__ == "__main__":
    run_module(run_demo)
