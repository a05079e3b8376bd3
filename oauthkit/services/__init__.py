"""Services module - OAuth2 client engine."""

from oauthkit.services.oauth_service import OAuth2Client

__all__ = ["OAuth2Client"]
