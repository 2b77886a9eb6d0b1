"""Facade: a simple front for a complicated subsystem."""
