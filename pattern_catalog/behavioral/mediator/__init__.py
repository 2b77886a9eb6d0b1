"""Mediator: colleagues talk through a hub instead of to each other."""
