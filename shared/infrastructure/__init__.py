"""Infrastructure: database sessions and correlation IDs."""
