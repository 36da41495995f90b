import json
from typing import Any, Dict, List, Optional


class MockResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body if body is not None else {})

    def json(self) -> Any:
        if self._body is None:
            return json.loads(self.text)
        return self._body


class MockTransport:
    """HttpClient double: replays queued responses and records every call."""

    def __init__(self, *responses):
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []  # Track calls for testing

    def queue(self, *responses):
        self.responses.extend(responses)

    async def request(self, method: str, url: str, options: Optional[Dict[str, Any]] = None):
        self.calls.append({"method": method, "url": url, "options": options or {}})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if not isinstance(response, MockResponse):
            response = MockResponse(200, response)
        return response

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def last_json(self) -> Any:
        return self.calls[-1]["options"].get("json")

    def clear_history(self):
        """Clear test history"""
        self.calls = []
