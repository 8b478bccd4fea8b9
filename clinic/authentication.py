"""
Token authentication for the staff dashboard.

Kept in its own module so ``REST_FRAMEWORK`` settings can import it
without pulling in any views.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token auth with the ``Token`` keyword, accepting ``Bearer`` too."""

    keyword = 'Token'

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if auth and auth[0].lower() == b'bearer' and len(auth) == 2 and b'.' not in auth[1]:
            # Opaque (non-JWT) key sent with the Bearer keyword.
            return self.authenticate_credentials(auth[1].decode())
        return super().authenticate(request)
