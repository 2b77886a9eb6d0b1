"""Observer: subjects notify subscribed observers of changes."""
