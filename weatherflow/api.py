"""Minimal HTTP-like surface for the ping and health endpoints.

Callers interact with :class:`HealthAPI` directly instead of going through a
framework; it models the ``GET /api/ping`` boundary and a diagnostic
``GET /api/health`` view of the registry.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .health import HealthRegistry

_JSON = {"Content-Type": "application/json"}


@dataclass
class Response:
    status_code: int
    body: str
    headers: Mapping[str, str]


class HealthAPI:
    PING_PATH = "/api/ping"
    HEALTH_PATH = "/api/health"

    def __init__(self, registry: Optional[HealthRegistry] = None) -> None:
        self._registry = registry or HealthRegistry()

    @property
    def registry(self) -> HealthRegistry:
        return self._registry

    def handle_request(self, method: str, path: str) -> Response:
        method = method.upper()
        if path not in (self.PING_PATH, self.HEALTH_PATH):
            return Response(status_code=404, body=json.dumps({"detail": "Not found"}), headers=_JSON)
        if method != "GET":
            return Response(status_code=405, body=json.dumps({"detail": "Method not allowed"}), headers=_JSON)
        payload = self.ping() if path == self.PING_PATH else self._registry.snapshot()
        return Response(status_code=200, body=json.dumps(payload, sort_keys=True), headers=_JSON)

    def ping(self) -> Dict[str, bool]:
        return {"ok": True}


__all__ = ["HealthAPI", "Response"]
