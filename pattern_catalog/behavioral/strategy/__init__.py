"""Strategy: interchangeable algorithms behind one interface."""
