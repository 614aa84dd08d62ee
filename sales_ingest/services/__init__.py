"""Import, query and verification services."""
