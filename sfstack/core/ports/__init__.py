"""
Port interfaces shared by components and adapters.
"""

from sfstack.core.ports.records import (
    RecordNotFoundError,
    RecordSessionPort,
    RecordStoreError,
    RecordStorePort,
    UnknownCollectionError,
)

__all__ = [
    "RecordSessionPort",
    "RecordStorePort",
    "RecordStoreError",
    "RecordNotFoundError",
    "UnknownCollectionError",
]
