"""Authentication and authorization.

Users log in with email/password and receive a JWT pair:
- access token (default 8h) sent on every request as a Bearer header
- refresh token (30 days) used only to mint new access tokens

Route handlers gate on ``authenticate_request`` / ``require_roles`` from
``backoffice.auth.dependencies``.
"""
