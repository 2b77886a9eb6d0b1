"""Chain of Responsibility: pass a request along handlers until one deals with it."""
