"""Visitor: new operations over an object structure without changing its classes."""
