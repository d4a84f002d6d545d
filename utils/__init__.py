"""Request validation, structured logging and response helpers."""
