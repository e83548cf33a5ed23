"""Variable resolution, release ledger and rule dispatch for deployment targets."""

__version__ = "0.1.0"
