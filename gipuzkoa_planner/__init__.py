"""Household wealth, income and tax projection for Gipuzkoa residents."""

__version__ = "0.1.0"
