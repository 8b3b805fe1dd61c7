from __future__ import annotations

import logging
from time import sleep
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from domain.base_types import WalletAddress
from domain.raw_events import EventKind, InternalTransfer, NativeTransfer, RawEvent, TokenTransfer, parse_events

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.etherscan.io/v2/api"
DEFAULT_PAGE_SIZE = 10_000
NO_RESULTS_MESSAGE = "No transactions found"
RATE_LIMIT_MARKER = "rate limit"


class EtherscanAPIError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class EtherscanClient:
    # https://docs.etherscan.io/etherscan-v2
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 30.0,
        delay_seconds: float = 0.25,
        session: requests.Session | None = None,
        retry_attempts: int = 5,
        retry_backoff_seconds: float = 1,
    ) -> None:
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)
        if page_size <= 0:
            msg = "page_size must be > 0"
            raise ValueError(msg)

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout
        self.delay_seconds = delay_seconds
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._session = session or requests.Session()

        retries = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist=[429, 502, 503, 504],
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def fetch_account_action(self, chain_id: int, action: str, address: WalletAddress) -> list[dict[str, Any]]:
        """Walk every page of an ``module=account`` listing, oldest first."""
        page = 1
        aggregated: list[dict[str, Any]] = []

        while True:
            params: dict[str, object] = {
                "chainid": chain_id,
                "module": "account",
                "action": action,
                "address": str(address),
                "startblock": 0,
                "endblock": "latest",
                "page": page,
                "offset": self.page_size,
                "sort": "asc",
                "apikey": self.api_key,
            }
            if self.delay_seconds:
                sleep(self.delay_seconds)
            batch = self._request_with_backoff(params)
            aggregated.extend(batch)

            logger.info(
                "Fetched page=%d size=%d total=%d action=%s chain_id=%s",
                page,
                len(batch),
                len(aggregated),
                action,
                chain_id,
            )
            if len(batch) < self.page_size:
                return aggregated
            page += 1

    def _request_with_backoff(self, params: dict[str, object]) -> list[dict[str, Any]]:
        # Etherscan reports throttling as HTTP 200 with status "0", which the adapter retry never sees.
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return self._request(params)
            except EtherscanAPIError as exc:
                if RATE_LIMIT_MARKER not in str(exc).lower() or attempt == self.retry_attempts:
                    raise
                wait = self.retry_backoff_seconds * 2 ** (attempt - 1)
                logger.warning("Etherscan rate limit hit (attempt %d); retrying in %.1fs", attempt, wait)
                sleep(wait)
        raise AssertionError("unreachable")

    def _request(self, params: dict[str, object]) -> list[dict[str, Any]]:
        try:
            response = self._session.request("GET", self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            error_payload: Any | None = None
            if resp is not None:
                try:
                    error_payload = resp.json()
                except ValueError:
                    error_payload = resp.text
            raise EtherscanAPIError("Etherscan request failed", status_code=status_code, payload=error_payload) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise EtherscanAPIError("Etherscan request failed", status_code=status_code) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise EtherscanAPIError("Etherscan returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise EtherscanAPIError("Etherscan returned unexpected payload type", payload=payload)

        result = payload.get("result")
        if str(payload.get("status")) != "1":
            message = str(payload.get("message") or "")
            if message.startswith(NO_RESULTS_MESSAGE) and not result:
                return []
            detail = result if isinstance(result, str) and result else message or "unknown error"
            raise EtherscanAPIError(f"Etherscan error: {detail}", status_code=response.status_code, payload=payload)

        if not isinstance(result, list):
            raise EtherscanAPIError("Etherscan result is not a list", status_code=response.status_code, payload=payload)
        return result


class EtherscanChainFeed:
    """The three account feeds of one chain, parsed into typed transfers."""

    def __init__(self, client: EtherscanClient, chain_id: int) -> None:
        self.client = client
        self.chain_id = chain_id

    def fetch_native_transfers(self, address: WalletAddress) -> list[NativeTransfer]:
        return self._fetch("txlist", "native", address)  # type: ignore[return-value]

    def fetch_internal_transfers(self, address: WalletAddress) -> list[InternalTransfer]:
        return self._fetch("txlistinternal", "internal", address)  # type: ignore[return-value]

    def fetch_token_transfers(self, address: WalletAddress) -> list[TokenTransfer]:
        return self._fetch("tokentx", "token", address)  # type: ignore[return-value]

    def _fetch(self, action: str, kind: EventKind, address: WalletAddress) -> list[RawEvent]:
        entries = self.client.fetch_account_action(self.chain_id, action, address)
        return parse_events(kind, entries)


__all__ = ["EtherscanAPIError", "EtherscanChainFeed", "EtherscanClient"]
