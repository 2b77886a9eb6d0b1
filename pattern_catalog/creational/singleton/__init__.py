"""Singleton: one shared instance per process."""
