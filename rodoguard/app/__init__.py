"""Application layer for RodoGuard.

Services here orchestrate detection, anonymization and auditing. Side
effects (ledger files, key files) are delegated to adapters and utilities.
"""
