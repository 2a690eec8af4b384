"""
Core modules for Bolzoni pricing.

This package contains fee resolution, installment pricing, event cost
aggregation, quotes and ledger entry building.
"""
