"""Fleet inspection HTTP service."""
