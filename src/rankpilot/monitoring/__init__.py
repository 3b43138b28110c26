from .metrics import Counter, Histogram

__all__ = ["Counter", "Histogram"]
