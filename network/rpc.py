"""
Fungible Token Governance - Ledger JSON-RPC Transport

Pooled JSON-RPC 2.0 transport to a ledger node. Only transport concerns
live here: HTTP status handling, gateway retries and per-method call
statistics. Errors raised by this module stay outside the token error
taxonomy so a network failure is never confused with a policy rejection;
mapping node rejections onto token errors is the Provider's job.
"""

import itertools
import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


Params = Union[List[Any], Dict[str, Any]]

# JSON-RPC 2.0 reserved code for unparsable responses
PARSE_ERROR = -32700

# Transport failures with no HTTP or JSON-RPC code of their own
TRANSPORT_FAILURE = -1

# Gateway responses that never reached the node and are safe to retry
RETRYABLE_STATUSES = (429, 502, 503, 504)


class RPCError(Exception):
    """A JSON-RPC call failed; ``data`` carries the node's error payload."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")


class RPCConnectionError(RPCError):
    """The node could not be reached or answered with an HTTP error."""
    pass


class RPCAuthError(RPCError):
    """The node rejected the credentials."""
    pass


class RPCTimeoutError(RPCError):
    """The node did not answer within the configured timeout."""
    pass


@dataclass
class RPCConfig:
    """Connection settings for a ledger node."""
    url: str = "http://localhost:26657"
    timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 1.0
    headers: Dict[str, str] = field(default_factory=dict)

    FIELDS = ("url", "timeout", "max_retries", "backoff_factor", "headers")

    def __post_init__(self):
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"RPC url must be http(s): {self.url}")
        if self.timeout <= 0:
            raise ValueError("RPC timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("RPC max_retries cannot be negative")

    @staticmethod
    def auth_headers(token: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    @classmethod
    def from_env(cls) -> 'RPCConfig':
        """Build a config from ``FTGOV_RPC_*`` environment variables."""
        env = os.environ
        return cls(
            url=env.get("FTGOV_RPC_URL", cls.url),
            timeout=int(env.get("FTGOV_RPC_TIMEOUT", cls.timeout)),
            max_retries=int(env.get("FTGOV_RPC_MAX_RETRIES", cls.max_retries)),
            backoff_factor=float(env.get("FTGOV_RPC_BACKOFF_FACTOR", cls.backoff_factor)),
            headers=cls.auth_headers(env.get("FTGOV_RPC_TOKEN")),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RPCConfig':
        """Build a config from a settings section, ignoring unrelated keys."""
        return cls(**{key: data[key] for key in cls.FIELDS if key in data})


@dataclass
class RPCResponse:
    """A decoded JSON-RPC reply."""
    result: Any
    id: Optional[Union[str, int]] = None
    elapsed: float = 0.0


@dataclass
class TransportStats:
    """Counters kept by a connection pool."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_time: float = 0.0
    last_request_time: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        answered = self.total_requests
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "total_time": self.total_time,
            "last_request_time": self.last_request_time,
            "average_request_time": self.total_time / answered if answered else 0,
            "success_rate": self.successful_requests / answered if answered else 0,
        }


class ConnectionPool:
    """Pooled HTTP session posting JSON-RPC envelopes to one node."""

    def __init__(self, config: RPCConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session = self._build_session(config)

        self._ids = itertools.count(1)
        self._stats = TransportStats()
        self._stats_lock = threading.Lock()

    @staticmethod
    def _build_session(config: RPCConfig) -> requests.Session:
        # Submissions are not idempotent, so only gateway failures are retried.
        retry_strategy = Retry(
            total=config.max_retries,
            backoff_factor=config.backoff_factor,
            status_forcelist=list(RETRYABLE_STATUSES),
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=10, pool_block=True)

        session = requests.Session()
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({
            "Content-Type": "application/json",
            "User-Agent": "ftgov-rpc-client/1.0",
        })
        return session

    def _envelope(self, method: str, params: Params,
                  request_id: Optional[Union[str, int]]) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id if request_id is not None else next(self._ids),
        }

    def _decode(self, response) -> Dict[str, Any]:
        """Turn an HTTP response into a JSON-RPC body or raise."""
        if response.status_code in (401, 403):
            raise RPCAuthError(response.status_code, "Authentication failed")
        if response.status_code != 200:
            raise RPCConnectionError(
                response.status_code,
                f"HTTP {response.status_code}: {response.reason}",
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RPCError(PARSE_ERROR, f"Invalid JSON response: {e}")

        error = body.get("error")
        if error:
            raise RPCError(error.get("code"), error.get("message"), error.get("data"))
        return body

    def request(self, method: str, params: Params,
                request_id: Optional[Union[str, int]] = None) -> RPCResponse:
        """Post one JSON-RPC call and return its decoded reply."""
        envelope = self._envelope(method, params, request_id)
        started = time.monotonic()

        try:
            response = self.session.post(
                self.config.url,
                data=json.dumps(envelope),
                headers=self.config.headers,
                timeout=self.config.timeout,
            )
            self._record(time.monotonic() - started)
            body = self._decode(response)
        except requests.exceptions.Timeout:
            self._record_failure()
            raise RPCTimeoutError(TRANSPORT_FAILURE, f"Request timed out after {self.config.timeout}s")
        except requests.exceptions.ConnectionError as e:
            self._record_failure()
            raise RPCConnectionError(TRANSPORT_FAILURE, f"Connection error: {e}")
        except requests.exceptions.RequestException as e:
            self._record_failure()
            raise RPCError(TRANSPORT_FAILURE, f"Request failed: {e}")
        except RPCError:
            self._record_failure()
            raise

        with self._stats_lock:
            self._stats.successful_requests += 1

        self.logger.debug(f"{method} answered in {time.monotonic() - started:.3f}s")
        return RPCResponse(result=body.get("result"), id=body.get("id"),
                           elapsed=time.monotonic() - started)

    def _record(self, elapsed: float):
        with self._stats_lock:
            self._stats.total_requests += 1
            self._stats.total_time += elapsed
            self._stats.last_request_time = datetime.now(timezone.utc)

    def _record_failure(self):
        with self._stats_lock:
            self._stats.failed_requests += 1

    def get_stats(self) -> Dict[str, Any]:
        """Transport counters plus the connection settings in use."""
        with self._stats_lock:
            stats = self._stats.as_dict()
        stats["config"] = {
            "url": self.config.url,
            "timeout": self.config.timeout,
            "max_retries": self.config.max_retries,
        }
        return stats

    def close(self):
        self.session.close()


class JsonRpcClient:
    """
    Blocking JSON-RPC client for a ledger node.

    Wraps a ``ConnectionPool`` and keeps call and error counts per method,
    which the CLI reports when run verbosely.
    """

    def __init__(self, config: Optional[RPCConfig] = None):
        self.config = config or RPCConfig.from_env()
        self.pool = ConnectionPool(self.config)
        self.logger = logging.getLogger(__name__)

        self._method_stats: Dict[str, Dict[str, Any]] = {}
        self._method_stats_lock = threading.Lock()

    def _tally(self, method: str, failed: bool, elapsed: float = 0.0):
        with self._method_stats_lock:
            stats = self._method_stats.setdefault(
                method, {"calls": 0, "errors": 0, "total_time": 0.0, "last_call": None}
            )
            if failed:
                stats["errors"] += 1
                return
            stats["calls"] += 1
            stats["total_time"] += elapsed
            stats["last_call"] = datetime.now(timezone.utc)

    def call(self, method: str, params: Optional[Params] = None) -> Any:
        """
        Call ``method`` and return its result.

        Args:
            method: JSON-RPC method name, e.g. ``token_getState``
            params: Positional list or named parameter object

        Raises:
            RPCError: The call failed in transport or was rejected by the node
        """
        started = time.monotonic()
        try:
            response = self.pool.request(method, params if params is not None else [])
        except RPCError as e:
            self._tally(method, failed=True)
            self.logger.error(f"RPC call {method} failed: {e}")
            raise

        self._tally(method, failed=False, elapsed=time.monotonic() - started)
        return response.result

    def get_method_stats(self) -> Dict[str, Dict[str, Any]]:
        with self._method_stats_lock:
            return {method: dict(stats) for method, stats in self._method_stats.items()}

    def close(self):
        self.pool.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
