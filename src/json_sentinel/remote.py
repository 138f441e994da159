"""Remote repair collaborator: ``request(text) -> fixed_text`` over HTTP."""

import logging
import threading
import time
from collections import deque

import httpx

from .errors import RateLimitExceeded, RepairUnavailable

logger = logging.getLogger(__name__)


class RateLimiter:
    """At most ``max_calls`` acquisitions per rolling ``window_seconds``."""

    def __init__(self, max_calls=5, window_seconds=60.0, clock=time.monotonic):
        self.max_calls = int(max_calls)
        self.window_seconds = float(window_seconds)
        self.clock = clock
        self._calls = deque()
        self._lock = threading.Lock()

    def _expire(self, now):
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    def remaining(self):
        with self._lock:
            self._expire(self.clock())
            return max(0, self.max_calls - len(self._calls))

    def acquire(self):
        now = self.clock()

        with self._lock:
            self._expire(now)

            if len(self._calls) >= self.max_calls:
                retry_after = self.window_seconds - (now - self._calls[0])
                raise RateLimitExceeded(
                    "Rate limit exceeded: {} repair requests per {:g} seconds".format(
                        self.max_calls, self.window_seconds
                    ),
                    retry_after=retry_after,
                )

            self._calls.append(now)


class HttpRepairService:
    def __init__(self, endpoint, api_key=None, timeout=30.0, rate_limiter=None, client=None):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.client = client

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = "Bearer {}".format(self.api_key)
        return headers

    def _post(self, payload):
        if self.client is not None:
            return self.client.post(self.endpoint, json=payload, headers=self._headers(), timeout=self.timeout)

        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.endpoint, json=payload, headers=self._headers())

    def request(self, text):
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

        logger.debug("POST %s (%d chars)", self.endpoint, len(text))

        try:
            response = self._post({"json": text})
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise RepairUnavailable("Repair service timed out: {}".format(exc)) from exc
        except httpx.HTTPStatusError as exc:
            message = "Repair service returned HTTP {}".format(exc.response.status_code)
            raise RepairUnavailable(message) from exc
        except httpx.HTTPError as exc:
            raise RepairUnavailable("Repair service request failed: {}".format(exc)) from exc
        except ValueError as exc:
            raise RepairUnavailable("Repair service sent a malformed response") from exc

        fixed = data.get("fixed_json") if isinstance(data, dict) else None
        if not isinstance(fixed, str) or not fixed.strip():
            raise RepairUnavailable("Repair service did not return fixed JSON")

        return fixed


# one limiter per endpoint, shared by every engine in the process
_limiters = {}
_limiters_lock = threading.Lock()


def shared_rate_limiter(endpoint, max_calls=5, window_seconds=60.0):
    with _limiters_lock:
        limiter = _limiters.get(endpoint)
        if limiter is None:
            limiter = RateLimiter(max_calls=max_calls, window_seconds=window_seconds)
            _limiters[endpoint] = limiter
        return limiter


def reset_rate_limiters():
    with _limiters_lock:
        _limiters.clear()


def build_repair_service(config, client=None):
    limiter = shared_rate_limiter(
        config["repair_endpoint"],
        max_calls=config.get("repair_rate_limit", 5),
        window_seconds=config.get("repair_rate_window_seconds", 60.0),
    )
    return HttpRepairService(
        endpoint=config["repair_endpoint"],
        api_key=config.get("repair_api_key"),
        timeout=config.get("repair_timeout_seconds", 30.0),
        rate_limiter=limiter,
        client=client,
    )
