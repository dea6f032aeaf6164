"""
Infrastructure layer - external service integrations.

- storage: Object storage (S3 and S3-compatible backends)

These wrappers translate between backend request formats and our domain
models.
"""
