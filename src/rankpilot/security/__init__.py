from .guard import RateLimitGuard
from .middleware import SecurityMiddleware

__all__ = ["RateLimitGuard", "SecurityMiddleware"]
