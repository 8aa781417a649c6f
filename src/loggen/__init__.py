"""
loggen - synthetic log, metric and trace generator.

This package fabricates log, metric and trace batches at a configured rate and
forwards them to a remote ingestion endpoint for load-testing or demoing an
observability backend.
"""

__version__ = "1.0.0"
