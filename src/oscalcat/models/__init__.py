"""Data models for catalog, baseline and coverage artifacts."""
