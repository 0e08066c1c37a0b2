"""Core utilities shared across paperkit modules."""
