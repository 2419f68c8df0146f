"""Per-operation rule checks, one module per rule."""
