"""Bridge a stablecoin to a smart account, swap it for gas and KLIMA, and stake."""

__version__ = "0.1.0"
