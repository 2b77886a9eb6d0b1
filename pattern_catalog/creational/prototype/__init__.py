"""Prototype: create objects by cloning a configured instance."""
