"""QR table ordering backend: tables, sessions, orders, checkout."""

__version__ = "1.0.0"
