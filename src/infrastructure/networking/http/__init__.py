from .structs import HTTPMethod
from .rest_client import RestClient

__all__ = [
    "HTTPMethod",
    "RestClient",
]
