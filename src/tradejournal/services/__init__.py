"""Integration points for external collaborators."""
