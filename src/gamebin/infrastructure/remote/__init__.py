"""Remote document store access."""

from gamebin.infrastructure.remote.jsonbin_client import JsonBinClient

__all__ = ["JsonBinClient"]
