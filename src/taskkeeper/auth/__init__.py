"""Authentication and authorization.

Learn: Three collaborators, leaves first:
1. IdentityVerifier — checks ID tokens issued by the external identity provider
2. SessionManager — trades a verified identity for a session cookie, verifies
   and revokes those cookies, mints one-time bootstrap tokens for sign-up
3. get_current_identity — the per-request gate in front of protected routes

All of them resolve to Claims, which live for one request only.
"""
