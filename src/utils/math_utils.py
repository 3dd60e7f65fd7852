HOURS_PER_YEAR = 24 * 365


def annualize_funding_rate(funding_rate: float) -> float:
    """Hourly funding rate as an annual percentage (rate x 24 x 365 x 100)."""
    return funding_rate * HOURS_PER_YEAR * 100
