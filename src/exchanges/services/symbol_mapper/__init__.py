"""
Symbol Mapper

Canonical symbol resolution shared by every provider and the market data store.
"""

from .symbol_mapper import SymbolMapper, SymbolMappingTable, DEFAULT_SYMBOL_TABLE

__all__ = [
    'SymbolMapper',
    'SymbolMappingTable',
    'DEFAULT_SYMBOL_TABLE',
]
