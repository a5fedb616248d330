"""Command line interface for SQLPane."""
