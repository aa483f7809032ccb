"""Internal helpers for the multibody package. Not part of the public API."""
