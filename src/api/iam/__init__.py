"""Identity and Access Management (IAM) bounded context.

Exposes who the caller is and what they may do. Authentication itself is
handled upstream; this context only reads the session it leaves behind.
"""
