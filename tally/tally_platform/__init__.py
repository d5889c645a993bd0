"""Platform runtime pieces (background workers)."""
