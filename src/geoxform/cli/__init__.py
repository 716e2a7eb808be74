"""Command-line interface for geoxform."""
