"""
Local storage: key-value backends and the payment ledger.
"""
