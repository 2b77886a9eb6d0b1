"""Decorator: add behaviour by wrapping objects."""
