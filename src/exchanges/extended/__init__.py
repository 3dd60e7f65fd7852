from .provider import ExtendedProvider

__all__ = ["ExtendedProvider"]
