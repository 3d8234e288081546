"""Request/response and domain models."""
