"""Shared Kernel module.

Components every bounded context depends on: the security context, the
access guard, the request handler wrapper and the observation context.
None of it imports a bounded context, and only the wrapper knows about
SQLAlchemy error types.
"""
