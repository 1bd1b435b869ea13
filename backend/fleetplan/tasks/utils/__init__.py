"""Task helpers."""
