"""Request handlers."""

from .index import hello
from .users import UserHandlers, maps_errors

__all__ = ["hello", "UserHandlers", "maps_errors"]
