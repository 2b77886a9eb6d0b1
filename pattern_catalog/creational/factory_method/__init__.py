"""Factory Method: subclasses decide which concrete product to create."""
