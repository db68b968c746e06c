"""notedash - personal note and task dashboard."""
