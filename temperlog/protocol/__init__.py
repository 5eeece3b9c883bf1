# protocol/__init__.py

from .driver import TemperDriver

__all__ = ["TemperDriver"]
