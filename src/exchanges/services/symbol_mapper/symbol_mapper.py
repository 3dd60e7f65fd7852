"""
Cross-Provider Symbol Mapper

Resolves provider specific spellings ("BTC", "BTC-USD", "BTCUSD") to one
canonical symbol ("BTC") and back.

Key Features:
- Immutable mapping table built once at startup and shared by reference
- Total normalize(): unknown input of any kind yields None, never raises
- Deterministic resolution: variant table first (first canonical in table
  order wins), then the provider's native reverse map
- Explicit extension functions returning new mappers instead of mutating
  shared state
"""

from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from msgspec import Struct

from exchanges.structs.types import CanonicalSymbol, ProviderName


class SymbolMappingTable(Struct, frozen=True):
    """
    Read-only symbol mapping configuration.

    Attributes:
        variants: canonical symbol -> every known spelling across providers
        provider_symbols: provider name -> (canonical symbol -> native spelling)
    """
    variants: Mapping[str, FrozenSet[str]]
    provider_symbols: Mapping[str, Mapping[str, str]]

    @classmethod
    def build(cls,
              variants: Mapping[str, Iterable[str]],
              provider_symbols: Mapping[str, Mapping[str, str]]) -> "SymbolMappingTable":
        """Freeze plain dictionaries into a table. Insertion order is preserved."""
        frozen_variants = MappingProxyType({
            canonical: frozenset(spellings) | {canonical}
            for canonical, spellings in variants.items()
        })
        frozen_providers = MappingProxyType({
            provider: MappingProxyType(dict(mapping))
            for provider, mapping in provider_symbols.items()
        })
        return cls(variants=frozen_variants, provider_symbols=frozen_providers)

    def with_symbol(self, canonical: str, spellings: Iterable[str]) -> "SymbolMappingTable":
        variants = dict(self.variants)
        variants[canonical] = variants.get(canonical, frozenset()) | frozenset(spellings)
        return SymbolMappingTable.build(variants, self.provider_symbols)

    def with_provider(self, provider: str, mapping: Mapping[str, str]) -> "SymbolMappingTable":
        provider_symbols = {name: dict(native) for name, native in self.provider_symbols.items()}
        provider_symbols.setdefault(provider, {}).update(mapping)
        return SymbolMappingTable.build(self.variants, provider_symbols)


DEFAULT_SYMBOL_TABLE = SymbolMappingTable.build(
    variants={
        "BNB": ["BNB", "BNB-USD", "BNBUSD"],
        "ETH": ["ETH", "ETH-USD", "ETHUSD"],
        "BTC": ["BTC", "BTC-USD", "BTCUSD"],
        "SUI": ["SUI", "SUI-USD", "SUIUSD"],
    },
    provider_symbols={
        "hyperliquid": {"BNB": "BNB", "ETH": "ETH", "BTC": "BTC", "SUI": "SUI"},
        "extended": {"BNB": "BNB-USD", "ETH": "ETH-USD", "BTC": "BTC-USD", "SUI": "SUI-USD"},
    },
)


class SymbolMapper:
    """
    Symbol resolution over an immutable SymbolMappingTable.

    Lookups are side-effect free. Reverse indexes are computed once in the
    constructor.
    """

    def __init__(self, table: SymbolMappingTable = DEFAULT_SYMBOL_TABLE):
        self._table = table

        variant_index: Dict[str, CanonicalSymbol] = {}
        for canonical, spellings in table.variants.items():
            for spelling in sorted(spellings):
                variant_index.setdefault(spelling, CanonicalSymbol(canonical))
        self._variant_index = MappingProxyType(variant_index)

        native_index: Dict[str, Dict[str, CanonicalSymbol]] = {}
        for provider, mapping in table.provider_symbols.items():
            reverse: Dict[str, CanonicalSymbol] = {}
            for canonical, native in mapping.items():
                reverse.setdefault(native, CanonicalSymbol(canonical))
            native_index[provider] = reverse
        self._native_index = MappingProxyType(native_index)

        canonicals = dict.fromkeys(table.variants)
        for mapping in table.provider_symbols.values():
            canonicals.update(dict.fromkeys(mapping))
        self._canonicals = tuple(CanonicalSymbol(symbol) for symbol in canonicals)

    @classmethod
    def from_config(cls,
                    symbols: Optional[Mapping[str, Iterable[str]]] = None,
                    provider_symbols: Optional[Mapping[str, Mapping[str, str]]] = None,
                    base: SymbolMappingTable = DEFAULT_SYMBOL_TABLE) -> "SymbolMapper":
        """Build a mapper from the defaults extended with configured additions."""
        table = base
        for canonical, spellings in (symbols or {}).items():
            table = table.with_symbol(canonical, spellings)
        for provider, mapping in (provider_symbols or {}).items():
            table = table.with_provider(provider, mapping)
        return cls(table)

    @property
    def table(self) -> SymbolMappingTable:
        return self._table

    def normalize(self, provider_symbol: Any, provider_name: Any) -> Optional[CanonicalSymbol]:
        """
        Resolve a provider spelling to its canonical symbol.

        Args:
            provider_symbol: Spelling as received from the provider
            provider_name: Provider the spelling came from

        Returns:
            Canonical symbol, or None when the spelling is unknown
        """
        if not isinstance(provider_symbol, str):
            return None

        canonical = self._variant_index.get(provider_symbol)
        if canonical is not None:
            return canonical

        if not isinstance(provider_name, str):
            return None
        reverse = self._native_index.get(provider_name)
        if reverse is None:
            return None
        return reverse.get(provider_symbol)

    def get_provider_symbol(self, canonical: str, provider_name: str) -> Optional[str]:
        """Native spelling used by provider_name for canonical, if known."""
        mapping = self._table.provider_symbols.get(provider_name)
        if mapping is None:
            return None
        return mapping.get(canonical)

    def get_all_variants(self, canonical: str) -> FrozenSet[str]:
        return self._table.variants.get(canonical, frozenset())

    def get_supported_symbols(self) -> List[CanonicalSymbol]:
        return list(self._canonicals)

    def get_supported_providers(self) -> List[ProviderName]:
        return [ProviderName(provider) for provider in self._table.provider_symbols]

    def is_canonical(self, symbol: Any) -> bool:
        return isinstance(symbol, str) and symbol in self._canonicals

    def with_symbol_mapping(self, canonical: str, variants: Iterable[str]) -> "SymbolMapper":
        """Return a new mapper that also knows the given spellings of canonical."""
        return SymbolMapper(self._table.with_symbol(canonical, variants))

    def with_provider_mapping(self, provider_name: str, mapping: Mapping[str, str]) -> "SymbolMapper":
        """Return a new mapper with additional canonical -> native spellings for a provider."""
        return SymbolMapper(self._table.with_provider(provider_name, mapping))
