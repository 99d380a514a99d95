from clubreg.middlewares.db_middleware import DatabaseMiddleware
from clubreg.middlewares.session_middleware import CanOpen, IsAdmin, SessionMiddleware

__all__ = ["DatabaseMiddleware", "SessionMiddleware", "CanOpen", "IsAdmin"]
