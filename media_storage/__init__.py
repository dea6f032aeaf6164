"""
Media Storage - object storage for a media server's generated artifacts.

This package contains:
- core: Backend-agnostic models (access control, storage class, uploads)
- infrastructure: S3 / S3-compatible storage client
- config: Storage configuration
"""

__version__ = "0.1.0"
