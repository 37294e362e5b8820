"""
Key provider implementations for resolving JWT signing keys.

This package contains implementations of the KeyProvider protocol.
"""

from .cognito import CognitoJWKSProvider

__all__ = ["CognitoJWKSProvider"]
