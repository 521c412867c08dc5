"""
Multi-chain prediction market event indexer.

Ingests contract logs, records each one exactly once and projects them
into positions, limit orders, conditions and attestations.
"""

__version__ = "0.1.0"
