"""JWT authentication, password hashing and rate limiting."""
