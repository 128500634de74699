"""Pydantic schemas and data types."""
