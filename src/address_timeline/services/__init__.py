"""Service layer for timeline writes and lookups."""
