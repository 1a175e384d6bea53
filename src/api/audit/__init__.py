"""Audit bounded context.

Append-only trail of security-relevant actions, always attributed to a
tenant. Recording is best effort: a failing audit store degrades
observability, never the request that triggered the entry.
"""
