"""Hybrid Realty HTTP server: REST API route groups plus the user and admin SPAs."""

__version__ = "1.0.0"
