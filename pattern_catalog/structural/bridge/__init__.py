"""Bridge: separate an abstraction from its implementation."""
