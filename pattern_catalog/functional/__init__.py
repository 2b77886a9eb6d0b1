"""Functional analogues of the classic patterns."""
