# gdrive_auth.py
import logging

from google_auth_oauthlib.flow import InstalledAppFlow

from .exceptions import StorageConnectionError

# The scope for Google Drive API
SCOPES = ["https://www.googleapis.com/auth/drive"]
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"


class GoogleDriveOAuthGenerator:
    """
    Obtains a long-lived refresh token for a Google account.
    The user opens the URL from generate_auth_url(), grants access and pastes
    the code shown by Google into check_token().
    """

    def __init__(self, client_id: str, client_secret: str):
        client_config = {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [REDIRECT_URI],
            }
        }
        self.flow = InstalledAppFlow.from_client_config(
            client_config, SCOPES, redirect_uri=REDIRECT_URI
        )

    def generate_auth_url(self) -> str:
        url, _ = self.flow.authorization_url(access_type="offline", prompt="consent")
        return url

    def check_token(self, code: str) -> str:
        """Exchanges the authorization code and returns the refresh token."""
        try:
            self.flow.fetch_token(code=code)
        except Exception as e:
            logging.error(f"Error requesting Google Drive token: {e}")
            raise StorageConnectionError(f"Error requesting Google Drive token: {e}") from e

        refresh_token = self.flow.credentials.refresh_token
        if not refresh_token:
            raise StorageConnectionError("Google did not return a refresh token.")
        return refresh_token
