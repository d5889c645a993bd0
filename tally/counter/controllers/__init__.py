"""Counter HTTP controllers."""
