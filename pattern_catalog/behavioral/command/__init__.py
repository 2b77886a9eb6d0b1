"""Command: requests as objects that can be queued, logged and undone."""
