from typing import NewType, Tuple

CanonicalSymbol = NewType('CanonicalSymbol', str)
ProviderName = NewType('ProviderName', str)

# (maker_pct, taker_pct)
FeeSchedule = Tuple[float, float]
