"""Builder: step-by-step construction of complex objects."""
