"""Storefront REST API: accounts, catalog, reviews and orders on MongoDB."""

__version__ = "0.1.0"
