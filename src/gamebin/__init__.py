"""GameBin - CRUD service for game-data collections.

Schema-driven forms, cached access and search over small JSON
collections stored in a hosted JSON document store.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
