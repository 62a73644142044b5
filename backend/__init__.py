"""
Backend package for the Plant Vault API.

A FastAPI application with database, storage, queue and auth abstractions,
plus the import worker that turns queued seed links into import log rows.
"""
