"""
Custom Throttle Classes for the Brokerage Portal

Provides rate limiting for security-sensitive endpoints.
"""
from rest_framework.throttling import AnonRateThrottle


class AuthRateThrottle(AnonRateThrottle):
    """
    Rate limiting for authentication endpoints.

    Applied to: login
    Prevents brute-force attacks against the brokerage API through the portal.
    """
    scope = 'auth'
