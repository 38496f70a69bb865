# Security utilities package

from .tokens import create_reset_token, read_reset_token

__all__ = [
    "create_reset_token",
    "read_reset_token",
]
