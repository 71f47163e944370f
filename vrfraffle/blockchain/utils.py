import os
import logging
import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()


def open_session(fqdn: str) -> requests.Session:
    """Open a requests session to the randomness service.

    Parameters
    ----------
    fqdn : str
        Host name of the randomness service.

    Returns
    -------
    requests.Session
        Session carrying the service's cookies.

    Raises
    ------
    RuntimeError
        If the service cannot be reached. Any underlying exception is
        re-raised as a ``RuntimeError`` with context.
    """
    url = "https://" + fqdn

    session = requests.Session()
    try:
        response = session.get(url + "/api/v1/health")
        response.raise_for_status()
        logger.debug(f"Randomness service reachable at {fqdn}")
        return session
    except Exception as e:
        session.close()
        logger.critical(f"Error occurred while starting session: {e}")
        raise RuntimeError(f"Failed to establish session: {e}") from e


def get_service_token() -> str:
    """Return the bearer token used to authenticate randomness requests.

    Raises
    ------
    RuntimeError
        If ``RANDOMNESS_SERVICE_TOKEN`` is not set.
    """
    token = os.environ.get("RANDOMNESS_SERVICE_TOKEN", "").strip()
    if not token:
        raise RuntimeError("Environment variable 'RANDOMNESS_SERVICE_TOKEN' is not set")
    # Never log the token itself
    logger.debug("Randomness service token loaded from environment")
    return token
