"""
Shared utilities and infrastructure components (logging, exceptions).
"""
