"""Authentication: password hashing, JWT access tokens and current-user dependencies."""
