"""
Core modules for Subscription Desk.

This package contains the catalog, subscription lookup, dedup guard,
subscription service and the signup session that ties them together.
"""
