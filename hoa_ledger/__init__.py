"""HOA ledger: assessment allocation, invoice reconciliation and budget reporting."""

__version__ = "0.1.0"
