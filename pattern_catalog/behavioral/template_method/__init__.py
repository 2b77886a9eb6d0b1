"""Template Method: a fixed algorithm skeleton with overridable steps."""
