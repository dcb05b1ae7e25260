"""Hypnos - permission-gated execution ledger with an event-sourced read mirror."""

__version__ = "0.1.0"
