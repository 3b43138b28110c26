from .sweeper import BackgroundSweeper

__all__ = ["BackgroundSweeper"]
