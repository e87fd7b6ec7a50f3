"""Settings, logging and domain constants."""
