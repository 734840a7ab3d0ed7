"""Pydantic v2 response schemas."""
