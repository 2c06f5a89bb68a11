"""OAuth 2.0 installed-app authentication for the Sheets and Gmail APIs."""

import os
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

import config
from utils.error_handler import AuthenticationError
from utils.logger import get_logger

logger = get_logger()

OAUTH_PORT = 8081

def _load_token(token_file: str) -> Optional[Credentials]:
    if not os.path.exists(token_file):
        return None
    try:
        creds = Credentials.from_authorized_user_file(token_file, config.SCOPES)
        logger.debug(f"Loaded credentials from {token_file} (scopes: {creds.scopes})")
        return creds
    except ValueError as e:
        logger.warning(f"Error loading token file {token_file}: {e}. Proceeding with re-authentication.")
        return None

def _save_token(creds: Credentials, token_file: str) -> None:
    try:
        with open(token_file, "w") as fh:
            fh.write(creds.to_json())
        logger.debug(f"Token saved to {token_file}")
    except OSError as e:
        logger.warning(f"Failed to save token to {token_file}: {e}")

def get_credentials(client_secrets_file: str = config.CLIENT_SECRETS_FILE,
                    token_file: str = config.TOKEN_FILE) -> Credentials:
    """Gets valid Google API credentials.

    Uses the cached token when valid, refreshes it when expired, and
    otherwise runs the local-server OAuth flow.

    Returns:
        Credentials: Valid Google OAuth 2.0 credentials.

    Raises:
        AuthenticationError: If refreshing or the OAuth flow fails.
        FileNotFoundError: If the client secrets file is needed but missing.
    """
    creds = _load_token(token_file)

    if creds and creds.valid:
        logger.info("Credentials are valid. Using cached token.")
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.info("Credentials expired, attempting refresh...")
        try:
            creds.refresh(Request())
        except RefreshError as e:
            logger.error(f"Credentials refresh failed: {e}", exc_info=config.DEBUG)
            if os.path.exists(token_file):
                os.remove(token_file)
            raise AuthenticationError("Failed to refresh token. Please re-authenticate.") from e
        logger.info("Credentials refreshed successfully.")
        _save_token(creds, token_file)
        return creds

    if not os.path.exists(client_secrets_file):
        logger.critical(f"{client_secrets_file} not found. Cannot initiate OAuth flow.")
        raise FileNotFoundError(f"{client_secrets_file} not found.")

    logger.info(f"No valid credentials found. Starting OAuth flow on port {OAUTH_PORT}...")
    try:
        flow = InstalledAppFlow.from_client_secrets_file(client_secrets_file, config.SCOPES)
        creds = flow.run_local_server(port=OAUTH_PORT)
    except Exception as e:
        logger.error(f"OAuth flow failed unexpectedly: {e}", exc_info=config.DEBUG)
        raise AuthenticationError(f"OAuth flow failed: {e}") from e

    if not creds:
        raise AuthenticationError("OAuth flow completed but no credentials were obtained.")
    logger.info("Authentication successful.")
    _save_token(creds, token_file)
    return creds
