from .core_routes import core
from .well_routes import wells

__all__ = ["core", "wells"]
