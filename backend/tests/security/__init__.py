"""Security tests for orggate

This module contains security-focused tests including:
- Authentication bypass attempts
- Tenant escape and resource enumeration attacks
- Organization leakage through channel responses
"""
