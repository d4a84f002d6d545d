"""Core services: credentials, tokens, sessions, authorization and auth flows."""
