"""
Exchange services exports.
"""

from .symbol_mapper import SymbolMapper, SymbolMappingTable, DEFAULT_SYMBOL_TABLE

__all__ = ['SymbolMapper', 'SymbolMappingTable', 'DEFAULT_SYMBOL_TABLE']
