"""Sprint planning backend application package."""
