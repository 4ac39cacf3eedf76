"""
Authentication helpers (bearer JWT verification, role checks).
"""
