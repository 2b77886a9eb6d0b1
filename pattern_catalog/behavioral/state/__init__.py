"""State: behaviour changes with the object's internal state."""
