"""
Backup scheduler service.

This package provides a FastAPI application and a polling worker that drive
scheduled backup jobs through their lifecycle, with database and executor
abstractions so the same code runs against Postgres in production and
in-memory backends in tests.
"""
