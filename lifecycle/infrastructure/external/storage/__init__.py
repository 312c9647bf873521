"""Blob storage for subject media: local filesystem or S3-compatible.

The S3 backend imports boto3 only when selected (the 'storage' extra).
"""

from lifecycle.infrastructure.external.storage.factory import create_blob_store
from lifecycle.infrastructure.external.storage.protocol import StorageProtocol

__all__ = [
    "StorageProtocol",
    "create_blob_store",
]
