"""I/O layer: persistent stores and the result cache."""
