"""Collaborator boundaries for ledger and receipt retrieval."""

from .collaborators import LedgerSource, ReceiptLookup, ReceiptLookupCache

__all__ = ["LedgerSource", "ReceiptLookup", "ReceiptLookupCache"]
