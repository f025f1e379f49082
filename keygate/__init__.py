"""Single-use key issuance and redemption server."""

__version__ = "0.1.0"
