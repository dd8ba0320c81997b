"""
mock_marketing.py — Mock Implementation of the Marketing Events API (REST)

This module provides a simulated marketing event pipeline for local runs and
for the test-suite. It accepts JSON:API event submissions and records them.

Simulation Scenarios:
    • Successful submission (HTTP 202) with a generated event id
    • Invalid API key (HTTP 401)
    • Forced failure status via `fail_with` (e.g. 500, 429)
    • At-most-once recording: a repeated `unique_id` is accepted but not stored again

Endpoints:
    POST /api/events/

Port:
    Default: 8003 (HTTP)
"""

import itertools
import json
import logging

import httpx
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

logging.basicConfig(level=logging.INFO)


class MockEventsApi:
    """
    In-memory events API.

    Attributes:
        events (list): Accepted event attribute payloads, one per distinct unique_id.
        requests (list): Every submitted body, including duplicates and rejected ones.
        fail_with (int, optional): Status code returned for every request while set.
        api_key (str, optional): Expected private key; any key is accepted when None.
    """

    def __init__(self, api_key: str = None):
        self.events = []
        self.requests = []
        self.fail_with = None
        self.api_key = api_key
        self._ids = itertools.count(1)
        self._seen = set()

    def submit(self, body: dict, authorization: str = None):
        """Returns `(status, response_body)` for one submission."""
        self.requests.append(body)

        if self.api_key is not None and authorization != f"Klaviyo-API-Key {self.api_key}":
            return 401, {"errors": [{"status": 401, "code": "not_authenticated",
                                     "detail": "Incorrect authentication credentials."}]}
        if self.fail_with:
            return self.fail_with, {"errors": [{"status": self.fail_with, "detail": "Simulated failure"}]}

        attributes = (body.get("data") or {}).get("attributes") or {}
        unique_id = attributes.get("unique_id")
        if unique_id in self._seen:
            logging.info(f"[Events] Duplikat ignoriert: {unique_id}")
        else:
            self._seen.add(unique_id)
            self.events.append(attributes)
            metric = attributes["metric"]["data"]["attributes"]["name"]
            logging.info(f"[Events] '{metric}' aufgezeichnet ({unique_id}).")

        return 202, {"data": {"type": "event", "id": f"evt-{next(self._ids)}"}}

    def metric_names(self) -> list:
        return [e["metric"]["data"]["attributes"]["name"] for e in self.events]

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """httpx.MockTransport handler."""
        status, body = self.submit(json.loads(request.content or b"{}"), request.headers.get("Authorization"))
        return httpx.Response(status, json=body)


app = FastAPI(title="Mock Marketing Events API")
events_api = MockEventsApi()


@app.post("/api/events/")
async def create_event(
        request: Request,
        authorization: str = Header(None),
        revision: str = Header(None)
):
    """
    Records a metric event.

    Returns:
        JSONResponse: 202 with the event id, or the simulated error status.
    """
    logging.info(f"[Events] Anfrage mit Revision {revision}")
    status, body = events_api.submit(await request.json(), authorization)
    return JSONResponse(status_code=status, content=body)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8003)
