"""Iterator: sequential access without exposing the underlying structure."""
