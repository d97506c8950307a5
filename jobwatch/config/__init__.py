from .settings import WatchConfig

__all__ = ["WatchConfig"]
