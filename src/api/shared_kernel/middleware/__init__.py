"""Shared middleware for cross-cutting concerns.

The request handler wrapper is the single entry point through which
business handlers of every bounded context obtain a bound database session.
"""
