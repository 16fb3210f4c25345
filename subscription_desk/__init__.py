"""
Subscription Desk.

Client for a publication-subscription backend with a local payment ledger.
"""

__version__ = "0.1.0"
