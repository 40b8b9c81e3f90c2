# nowcapital/models/service/client.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from nowcapital.errors import RemoteServiceError
from nowcapital.models import Credentials, Settings

logger = logging.getLogger(__name__)

STATUS_PATH = "/simulations/status/{task_id}"
RESULT_PATH = "/simulations/result/{task_id}"
CREDENTIAL_TEST_PATH = "/api-keys/status"


class NowCapitalClient:
    """
    Thin blocking transport for the calculation service.
    Every call is a fresh request; nothing is cached.
    """

    def __init__(
        self,
        credentials: Credentials,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.settings = settings or Settings()
        self.session = session or self._build_session(self.settings.max_retries)

    @staticmethod
    def _build_session(max_retries: int) -> requests.Session:
        session = requests.Session()
        if max_retries > 0:
            retry = Retry(total=max_retries, backoff_factor=0.5, status_forcelist=(502, 503, 504))
            adapter = HTTPAdapter(max_retries=retry)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        return session

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"x-api-key": self.credentials.api_key}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.credentials.base_url.rstrip('/')}{path}"

    def _send(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        logger.info("%s %s", method, path)
        try:
            response = self.session.request(
                method,
                self._url(path),
                json=body,
                headers=self._headers(json_body=body is not None),
                timeout=self.settings.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteServiceError(f"{method} {path} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise RemoteServiceError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text[:600],
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
                body=response.text[:600],
            ) from exc

    # ---- endpoints ----------------------------------------------------
    def post(self, path: str, payload: Dict[str, Any]) -> Any:
        return self._send("POST", path, payload)

    def get_status(self, task_id: str) -> Dict[str, Any]:
        return self._send("GET", STATUS_PATH.format(task_id=quote(str(task_id), safe="")))

    def get_result(self, task_id: str) -> Dict[str, Any]:
        return self._send("GET", RESULT_PATH.format(task_id=quote(str(task_id), safe="")))

    def check_credentials(self) -> Dict[str, Any]:
        return self._send("GET", CREDENTIAL_TEST_PATH)

    def close(self):
        self.session.close()
