"""
Expiry scheduling module.

One-shot deadline callbacks for low-latency relocking, backed by a periodic
reconciliation sweep that bounds staleness when a one-shot is lost.
"""
from .expiry import ExpiryScheduler

__all__ = ["ExpiryScheduler"]
