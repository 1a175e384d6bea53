"""Tickets bounded context.

Reference consumer of the security layer: every query runs through the
RequestHandlerWrapper and is filtered by row-level security.
"""
