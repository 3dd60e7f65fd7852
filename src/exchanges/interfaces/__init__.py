from .data_provider import DataProvider, BaseDataProvider

__all__ = [
    "DataProvider",
    "BaseDataProvider",
]
