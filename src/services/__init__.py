"""
Service functions for the email intake Lambda.

This package contains reusable functions for MIME parsing and S3 interactions.
"""

__all__ = ['email', 's3']
