"""
Pattern Catalog.

Runnable demonstrations of object-oriented (GoF) and functional design
patterns. Each use case lives in its own module and exposes ``run_demo()``.
"""

__version__ = "1.0.0"
