import os
from urllib.parse import urljoin
from dotenv import load_dotenv
from .utils import open_session, get_service_token
from typing import Any, Optional, Mapping


class RandomnessClient:
    """HTTP client for a remote randomness coordinator.

    Implements :class:`~vrfraffle.blockchain.randomness.RandomnessProvider`;
    the service delivers the words later by calling back into the raffle as
    ``address``.
    """

    def __init__(
        self,
        address: str,
        base_fqdn: Optional[str] = None,
        timeout: int = 45,
    ):
        load_dotenv()
        fqdn = base_fqdn or os.getenv("RANDOMNESS_SERVICE_FQDN")
        if not fqdn:
            raise ValueError("Environment variable 'RANDOMNESS_SERVICE_FQDN' is not set")

        self.address = address
        self.base_url = f"https://{fqdn}".rstrip("/")
        self.session = open_session(fqdn)
        self.token = get_service_token()
        self.timeout = timeout

    def close(self) -> None:
        self.session.close()

    # -------- headers --------
    @property
    def auth_headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.token}"}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=self.auth_headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    # -------- API callers --------
    def request_random_words(
        self,
        key_hash: str,
        subscription_id: int,
        request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
        *,
        consumer: str,
    ) -> int:
        response = self._request(
            "POST",
            "/api/v1/randomness/requests",
            json={
                "key_hash": key_hash,
                "subscription_id": subscription_id,
                "request_confirmations": request_confirmations,
                "callback_gas_limit": callback_gas_limit,
                "num_words": num_words,
                "consumer": consumer,
            },
        )
        if not isinstance(response, dict) or "request_id" not in response:
            raise RuntimeError(f"Unexpected randomness request response: {response!r}")
        return int(response["request_id"])

    def get_request(self, request_id: int) -> dict:
        """Return the service's view of a request (status, fulfillment tx, ...)."""
        return self._request("GET", f"/api/v1/randomness/requests/{request_id}")

    def get_subscription(self, subscription_id: int) -> dict:
        return self._request("GET", f"/api/v1/randomness/subscriptions/{subscription_id}")
