"""
Spot FX quotes updated along simulated paths.
"""

from dataclasses import dataclass

from ccr_core._types import Year


@dataclass(eq=False)
class FxRate:
    """
    FX rate quoted as units of ``to_ccy`` per unit of ``from_ccy``.

    Attributes
    ----------
    from_ccy : str
        Base currency
    to_ccy : str
        Quote currency
    rate : float
        Current quote
    spot : float
        Date of the quote in years

    Example
    -------
    >>> fx = FxRate("EUR", "USD", 1.10)
    >>> fx.get_rate("USD", "EUR")  # doctest: +ELLIPSIS
    0.909...
    """

    from_ccy: str
    to_ccy: str
    rate: float
    spot: Year = 0.0

    def __post_init__(self) -> None:
        """Validate the quote."""
        if self.rate <= 0:
            raise ValueError(f"FX rate must be positive, got {self.rate}")
        if self.from_ccy == self.to_ccy:
            raise ValueError(f"FX rate needs two currencies, got {self.from_ccy} twice")

    def involves(self, ccy: str) -> bool:
        """True if ccy is one of the two currencies of the pair."""
        return ccy in (self.from_ccy, self.to_ccy)

    def get_rate(self, from_ccy: str, to_ccy: str) -> float:
        """
        Rate converting one unit of from_ccy into to_ccy.

        Raises
        ------
        ValueError
            If the pair does not match this quote
        """
        if from_ccy == self.from_ccy and to_ccy == self.to_ccy:
            return self.rate
        if from_ccy == self.to_ccy and to_ccy == self.from_ccy:
            return 1.0 / self.rate
        raise ValueError(
            f"FxRate {self.from_ccy}/{self.to_ccy} cannot convert {from_ccy} to {to_ccy}"
        )

    def update(self, date: Year, from_ccy: str, to_ccy: str, value: float) -> None:
        """
        Set the quote at date from a rate expressed in either direction.

        Parameters
        ----------
        date : float
            Quote date in years
        from_ccy : str
            Base currency of ``value``
        to_ccy : str
            Quote currency of ``value``
        value : float
            Units of to_ccy per unit of from_ccy
        """
        if from_ccy == self.from_ccy and to_ccy == self.to_ccy:
            self.rate = value
        elif from_ccy == self.to_ccy and to_ccy == self.from_ccy:
            self.rate = 1.0 / value
        else:
            raise ValueError(
                f"FxRate {self.from_ccy}/{self.to_ccy} cannot be updated "
                f"from {from_ccy}/{to_ccy}"
            )
        self.spot = date

    def __repr__(self) -> str:
        """Return string representation."""
        return f"FxRate({self.from_ccy}/{self.to_ccy}={self.rate:.6f} @ {self.spot:.4f}Y)"
