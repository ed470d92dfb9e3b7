"""Newsletter Gateway service."""
