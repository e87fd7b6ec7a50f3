"""Database engine and request correlation."""
