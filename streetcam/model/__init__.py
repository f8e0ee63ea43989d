"""Domain entities and search filters."""
