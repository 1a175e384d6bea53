"""Ports for the audit bounded context."""
