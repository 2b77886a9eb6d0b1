"""Flyweight: share intrinsic state between many small objects."""
