"""
Authentication application.

Provides the user directory the chat engine consumes as its "current
principal": an email-based User model plus JWT token endpoints.

Usage:
    from authentication.models import User
"""
