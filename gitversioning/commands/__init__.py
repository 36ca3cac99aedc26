"""Command implementations for the gitversioning CLI."""
