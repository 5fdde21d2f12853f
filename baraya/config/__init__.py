"""Remote API client configuration."""
