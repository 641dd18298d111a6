"""Tests for the backend HTTP client using a stub requests session."""

from __future__ import annotations

from typing import Any
import unittest

import requests

from formsign.backend.client import BackendClient, BackendError

from support import ONE_PIXEL_DATA_URI

FORM_BODY = {
    "payload": {
        "document": {
            "documentProperties": {
                "id": "doc-7",
                "tag": "MASTER",
                "title": "Mandate",
                "download": {"url": "https://files.example/doc-7.pdf"},
            },
            "documentType": {"id": "PDF_TEMPLATE"},
        }
    }
}


class StubResponse:
    def __init__(self, body: Any, status: int = 200) -> None:
        self._body = body
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class StubSession:
    def __init__(self, response: StubResponse | Exception) -> None:
        self.response = response
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, json: dict[str, Any], timeout: float) -> StubResponse:
        self.calls.append((url, json))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def close(self) -> None:
        pass


class TestBackendClient(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_form_by_token(self) -> None:
        http = StubSession(StubResponse(FORM_BODY))
        client = BackendClient("https://api.example/", timeout=1, http=http)

        form = await client.fetch_form_by_token("tok-1")

        self.assertEqual(http.calls, [("https://api.example/doc/request/form", {"token": "tok-1"})])
        self.assertEqual(form.id, "doc-7")
        self.assertEqual(form.tag, "MASTER")
        self.assertEqual(form.source_url, "https://files.example/doc-7.pdf")
        self.assertEqual(form.document_type, "PDF_TEMPLATE")
        self.assertEqual(form.raw["documentProperties"]["title"], "Mandate")

    async def test_submit_form_posts_wire_payload(self) -> None:
        signed = {"payload": {"document": dict(FORM_BODY["payload"]["document"])}}
        signed["payload"]["document"]["documentProperties"] = {
            **FORM_BODY["payload"]["document"]["documentProperties"],
            "tag": "SIGNED",
        }
        http = StubSession(StubResponse(signed))
        client = BackendClient("https://api.example", timeout=1, http=http)
        signatures = {
            "signature_client": {
                "annotation_field_name": "signature_client",
                "data_uri": ONE_PIXEL_DATA_URI,
                "timestamp": "2024-01-01T00:00:00+00:00",
            }
        }

        form = await client.submit_form("tok-1", {"1R": "Jane"}, signatures)

        url, body = http.calls[0]
        self.assertEqual(url, "https://api.example/doc/response/submit")
        self.assertEqual(body["token"], "tok-1")
        self.assertEqual(body["annotationData"], {"1R": "Jane"})
        self.assertEqual(body["signatures"]["signature_client"]["data_uri"], ONE_PIXEL_DATA_URI)
        self.assertTrue(form.is_signed)

    async def test_http_error_raises_backend_error(self) -> None:
        client = BackendClient("https://api.example", timeout=1, http=StubSession(StubResponse({}, 500)))
        with self.assertRaises(BackendError):
            await client.fetch_form_by_token("tok-1")

    async def test_connection_error_raises_backend_error(self) -> None:
        http = StubSession(requests.ConnectionError("refused"))
        client = BackendClient("https://api.example", timeout=1, http=http)
        with self.assertRaises(BackendError):
            await client.submit_form("tok-1", {}, {})

    async def test_unexpected_body_raises_backend_error(self) -> None:
        client = BackendClient("https://api.example", timeout=1, http=StubSession(StubResponse({"ok": True})))
        with self.assertRaises(BackendError):
            await client.fetch_form_by_token("tok-1")

    async def test_non_json_body_raises_backend_error(self) -> None:
        http = StubSession(StubResponse(ValueError("no json")))
        client = BackendClient("https://api.example", timeout=1, http=http)
        with self.assertRaises(BackendError):
            await client.fetch_form_by_token("tok-1")


if __name__ == "__main__":
    unittest.main()
