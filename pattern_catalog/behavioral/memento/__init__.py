"""Memento: capture and restore an object's state without breaking encapsulation."""
