"""Configuration, auth, logging, and error-handling infrastructure."""
