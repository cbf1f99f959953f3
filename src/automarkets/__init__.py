"""automarkets - automated memecoin prediction market lifecycle engine."""

__version__ = "0.1.0"
