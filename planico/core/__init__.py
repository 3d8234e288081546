"""Time grid primitives."""
