"""Factory function for creating Google API service clients."""

from typing import Dict, Tuple

from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from google.oauth2.credentials import Credentials

import config
from utils.error_handler import APIError, AuthenticationError
from utils.logger import get_logger

logger = get_logger()

# Built clients keyed by (service, version, credentials identity)
_service_cache: Dict[Tuple[str, str, int], Resource] = {}

def build_service(service_name: str, version: str, credentials: Credentials) -> Resource:
    """Builds and returns a Google API service client, reusing cached ones.

    Args:
        service_name: The name of the service (e.g., 'sheets', 'gmail').
        version: The version of the service (e.g., 'v4', 'v1').
        credentials: Valid Google OAuth 2.0 credentials.

    Returns:
        Resource: The Google API service client resource object.

    Raises:
        AuthenticationError: If credentials are invalid or expired.
        APIError: If the service fails to build.
    """
    if not credentials or not credentials.valid:
        logger.error(f"Attempted to build service '{service_name}' with invalid credentials.")
        raise AuthenticationError(f"Invalid or expired credentials provided for service '{service_name}'. Please re-authenticate.")

    cache_key = (service_name, version, id(credentials))
    if cache_key in _service_cache:
        logger.debug(f"Using cached service client for {service_name} {version}")
        return _service_cache[cache_key]

    logger.debug(f"Building new service client for {service_name} {version}...")
    try:
        service = build(service_name, version, credentials=credentials, cache_discovery=False)
    except HttpError as e:
        logger.error(
            f"Failed to build service '{service_name}' {version} due to HTTP error: {e.resp.status} {e.content}",
            exc_info=config.DEBUG
        )
        if e.resp.status in (401, 403):
            raise AuthenticationError(
                f"Authentication/Authorization error building service '{service_name}': {e.resp.status}. "
                "Check permissions and credentials."
            ) from e
        raise APIError(
            f"Failed to build service '{service_name}' {version} due to HTTP error {e.resp.status}.",
            status_code=e.resp.status,
            service=service_name
        ) from e
    except Exception as e:
        logger.error(f"Unexpected error building service '{service_name}' {version}: {e}", exc_info=config.DEBUG)
        raise APIError(f"Unexpected error building service '{service_name}': {e}", service=service_name) from e

    logger.info(f"Successfully built service client for {service_name} {version}.")
    _service_cache[cache_key] = service
    return service
