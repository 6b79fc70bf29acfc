"""Catalog normalization, transformation and read-only access."""
