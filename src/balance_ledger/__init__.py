"""Idempotent, transactional per-account balance ledger."""

__version__ = "1.0.0"
