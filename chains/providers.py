"""
chains/providers.py - JSON-RPC access with endpoint failover.

One RPCProvider per chain. Endpoints come from the chain YAML and may carry
${VAR} placeholders that are filled from the environment (.env is loaded on
import). The endpoint that answered last is tried first on the next call.

eth_call failures come in two kinds and callers must be able to tell them
apart:
- the node answered and the call reverted -> CallRevertedError (not retried)
- nobody answered usefully -> InfraError once every endpoint has been tried
"""

import os
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx
from dotenv import load_dotenv

from core.logging import get_logger
from core.exceptions import CallRevertedError, InfraError

logger = get_logger(__name__)

load_dotenv()

_ENV_VAR = re.compile(r"\$\{([A-Z0-9_]+)\}")

# geth-style "execution reverted"
REVERT_ERROR_CODE = 3


@dataclass
class EndpointHealth:
    """Request counters for one RPC endpoint."""
    url: str
    requests: int = 0
    ok: int = 0
    errors: int = 0
    reverts: int = 0
    latency_total_ms: int = 0
    last_error: str | None = None

    @property
    def answered(self) -> int:
        return self.ok + self.reverts

    @property
    def avg_latency_ms(self) -> int:
        return self.latency_total_ms // self.answered if self.answered else 0

    @property
    def error_rate(self) -> float:
        return self.errors / self.requests if self.requests else 0.0

    def to_dict(self) -> dict:
        return {
            "requests": self.requests,
            "ok": self.ok,
            "reverts": self.reverts,
            "errors": self.errors,
            "error_rate": round(self.error_rate, 3),
            "avg_latency_ms": self.avg_latency_ms,
            "last_error": self.last_error,
        }


@dataclass
class RPCResponse:
    """Response from an RPC call."""
    result: Any
    latency_ms: int
    endpoint_used: str


def resolve_env_url(url: str) -> str | None:
    """
    Expand ${VAR} placeholders from the environment.

    Returns None when a placeholder has no value, so endpoints that need a
    missing API key are dropped instead of hit with a broken URL.
    """
    missing = []

    def _sub(match: re.Match) -> str:
        value = os.getenv(match.group(1), "")
        if not value:
            missing.append(match.group(1))
        return value

    resolved = _ENV_VAR.sub(_sub, url)
    return None if missing else resolved


def is_revert_error(error: dict) -> bool:
    """True when a JSON-RPC error object describes an on-chain revert."""
    if error.get("code") == REVERT_ERROR_CODE:
        return True
    return "revert" in str(error.get("message", "")).lower()


def extract_revert_data(error: dict) -> str:
    """Revert payload from a JSON-RPC error object, "0x" when there is none."""
    data = error.get("data")
    if isinstance(data, dict):
        data = data.get("data") or data.get("result")
    if isinstance(data, str) and data.startswith("0x"):
        return data
    return "0x"


class _EndpointFailed(Exception):
    """One endpoint gave no usable answer; try the next one."""


class RPCProvider:
    """JSON-RPC client for one chain, failing over across endpoints."""

    def __init__(
        self,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: float = 10,
    ):
        self.chain_id = chain_id
        self.timeout_seconds = timeout_seconds
        self.rpc_urls = [u for u in map(resolve_env_url, rpc_urls) if u]
        self.health: dict[str, EndpointHealth] = {u: EndpointHealth(url=u) for u in self.rpc_urls}
        self._preferred: str | None = None
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

    def _client_or_new(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _endpoint_order(self) -> list[str]:
        if self._preferred in self.rpc_urls:
            return [self._preferred] + [u for u in self.rpc_urls if u != self._preferred]
        return list(self.rpc_urls)

    async def _post(self, url: str, method: str, params: list) -> RPCResponse:
        """
        Single attempt against one endpoint.

        Raises:
            CallRevertedError: the node executed the call and it reverted
            _EndpointFailed: transport error, timeout, bad JSON or a non-revert RPC error
        """
        health = self.health[url]
        health.requests += 1
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id}

        started = time.monotonic()
        try:
            resp = await self._client_or_new().post(url, json=payload)
            body = resp.json()
        except httpx.TimeoutException:
            health.errors += 1
            health.last_error = f"timeout after {self.timeout_seconds}s"
            raise _EndpointFailed(health.last_error)
        except (httpx.HTTPError, ValueError) as e:
            health.errors += 1
            health.last_error = str(e) or type(e).__name__
            raise _EndpointFailed(health.last_error)
        latency_ms = int((time.monotonic() - started) * 1000)

        error = body.get("error") if isinstance(body, dict) else {"message": "malformed response"}
        if error:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            message = error.get("message", str(error))
            if is_revert_error(error):
                health.reverts += 1
                health.latency_total_ms += latency_ms
                raise CallRevertedError(
                    message=f"Call reverted: {message}",
                    revert_data=extract_revert_data(error),
                    details={"url": url, "method": method},
                )
            health.errors += 1
            health.last_error = message
            raise _EndpointFailed(message)

        health.ok += 1
        health.latency_total_ms += latency_ms
        return RPCResponse(result=body.get("result"), latency_ms=latency_ms, endpoint_used=url)

    async def call(self, method: str, params: list | None = None) -> RPCResponse:
        """
        JSON-RPC call, trying endpoints until one answers.

        Raises:
            CallRevertedError: The call reached a node and reverted
            InfraError: No endpoint answered
        """
        if not self.rpc_urls:
            raise InfraError(
                message="No RPC endpoints configured",
                details={"chain_id": self.chain_id},
            )

        failures: dict[str, str] = {}
        for url in self._endpoint_order():
            try:
                response = await self._post(url, method, params or [])
            except CallRevertedError:
                self._preferred = url
                raise
            except _EndpointFailed as e:
                failures[url] = str(e)
                logger.debug(
                    f"RPC {method} failed on {url}: {e}",
                    extra={"context": {"chain_id": self.chain_id, "method": method}},
                )
                continue
            self._preferred = url
            return response

        raise InfraError(
            message=f"All RPC endpoints failed for chain {self.chain_id}",
            details={
                "chain_id": self.chain_id,
                "method": method,
                "endpoints_tried": len(failures),
                "failures": failures,
            },
        )

    async def get_block_number(self) -> tuple[int, int]:
        """(block_number, latency_ms) of the chain head."""
        response = await self.call("eth_blockNumber")
        return int(response.result, 16), response.latency_ms

    async def eth_call(self, to: str, data: str, block: str = "latest") -> RPCResponse:
        return await self.call("eth_call", [{"to": to, "data": data}, block])

    def health_summary(self) -> dict[str, dict]:
        return {url: h.to_dict() for url, h in self.health.items()}
