"""
Backfill full app data documents from IPFS.

Orders reference app data by its 32 byte sha2-256 hash. This package finds
hashes whose full document is not yet stored, fetches each document from an
IPFS gateway and inserts it into the app_data table.
"""

__version__ = "0.1.0"
