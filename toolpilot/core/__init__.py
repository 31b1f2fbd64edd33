"""Core infrastructure: config, providers, errors, rate limiting."""
