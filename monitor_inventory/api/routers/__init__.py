from . import monitors

__all__ = ["monitors"]
