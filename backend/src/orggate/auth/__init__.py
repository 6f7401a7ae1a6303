"""Authentication: bearer JWTs for web sessions, service token for channel adapters."""
