"""Signed-in users shared by the API tests."""

from readiness.api.middleware.user_auth import AuthenticatedUser

FOUNDER = AuthenticatedUser(id="founder-1", email="founder@startup.io", name="Sam Founder")
INVESTOR = AuthenticatedUser(id="investor-1", email="jane@acme.vc", name="Jane Doe")
