"""Service layer for the noteshelf service."""
