"""Application wiring: lifespan, middlewares and error handlers."""

from .errors import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_middlewares

__all__ = ["lifespan", "register_exception_handlers", "register_middlewares"]
