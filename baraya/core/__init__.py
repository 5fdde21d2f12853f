"""Settings, logging, errors, events and task plumbing."""
