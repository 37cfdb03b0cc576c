"""
Backend package for the ejarat-sync API.

This package provides a FastAPI application for account signup/login,
per-user invoices and whole-snapshot JSON sync, with database and token
abstractions so the same app runs against Postgres or an in-memory store.
"""
