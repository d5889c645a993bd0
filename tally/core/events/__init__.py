"""In-process domain events."""
