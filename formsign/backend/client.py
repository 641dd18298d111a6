"""HTTP client for the two backend calls a form session issues."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError
import requests

from formsign.backend.schemas import BackendResponse, SubmitRequest
from formsign.config import settings
from formsign.model.form import Form

logger = logging.getLogger(__name__)

REQUEST_FORM_PATH = "/doc/request/form"
SUBMIT_PATH = "/doc/response/submit"


class BackendError(RuntimeError):
    """Raised when a backend exchange fails or returns an unusable body."""


class BackendClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self._base_url = (base_url or settings.backend_url).rstrip("/")
        self._timeout = timeout or settings.request_timeout
        self._http = http or requests.Session()

    async def fetch_form_by_token(self, token: str) -> Form:
        body = await asyncio.to_thread(self._post, REQUEST_FORM_PATH, {"token": token})
        return self._parse_form(body)

    async def submit_form(
        self,
        token: str,
        annotation_data: dict[str, Any],
        signatures: dict[str, dict[str, str]],
    ) -> Form:
        try:
            request = SubmitRequest(token=token, annotation_data=annotation_data, signatures=signatures)
        except ValidationError as exc:
            raise BackendError(f"Invalid submission payload: {exc}") from exc
        body = await asyncio.to_thread(self._post, SUBMIT_PATH, request.model_dump(by_alias=True))
        return self._parse_form(body)

    def close(self) -> None:
        self._http.close()

    def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("POST %s", url)
        try:
            response = self._http.post(url, json=payload, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise BackendError(f"Request to {path} failed: {exc}") from exc
        except ValueError as exc:
            raise BackendError(f"Response from {path} is not JSON") from exc

    @staticmethod
    def _parse_form(body: Any) -> Form:
        try:
            return BackendResponse.model_validate(body).payload.document.to_form()
        except ValidationError as exc:
            raise BackendError(f"Unexpected backend response: {exc}") from exc
