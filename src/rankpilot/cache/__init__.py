from .expiring_cache import ExpiringCache
from .instance_pool import InstancePool

__all__ = ["ExpiringCache", "InstancePool"]
