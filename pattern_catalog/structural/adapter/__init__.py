"""Adapter: make incompatible interfaces work together."""
