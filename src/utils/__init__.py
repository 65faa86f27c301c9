"""Shared utilities: fact normalization."""
