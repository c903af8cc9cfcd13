"""Shared domain models and error types."""
