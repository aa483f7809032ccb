"""Internal helpers for the contact_control package. Not part of the public API."""
