from . import health, root

__all__ = ["health", "root"]
