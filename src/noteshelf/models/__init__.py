"""Data models for the noteshelf service."""
