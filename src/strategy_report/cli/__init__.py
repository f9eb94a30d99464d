"""Command line interface for Strategy Report."""
