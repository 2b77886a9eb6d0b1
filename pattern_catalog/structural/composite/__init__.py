"""Composite: treat individual objects and groups uniformly."""
