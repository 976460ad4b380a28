"""External system integrations."""
