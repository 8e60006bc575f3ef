class ConflictError(ValueError):
    """A write collided with an existing unique value (item code, email)."""


__all__ = ["ConflictError"]
