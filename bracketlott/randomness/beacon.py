"""HTTP client for a drand-style public randomness beacon."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional
from urllib.parse import urljoin

import requests
from dotenv import load_dotenv

from ..config import DEFAULT_BEACON_URL, LotteryConfig
from ..errors import InvalidInputError, InvalidStateError
from ..prize_draw.draw_number import MIN_SEED_LENGTH

logger = logging.getLogger(__name__)


class BeaconClient:
    """Thin wrapper over the beacon's public JSON API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        chain_hash: Optional[str] = None,
        config: Optional[LotteryConfig] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 10,
    ):
        load_dotenv()
        url = (
            base_url
            or (config.beacon_url if config is not None else None)
            or os.getenv("LOTTERY_BEACON_URL")
            or DEFAULT_BEACON_URL
        )
        self.base_url = url.rstrip("/")
        self.chain_hash = chain_hash or os.getenv("LOTTERY_BEACON_CHAIN_HASH") or None
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    def _path(self, suffix: str) -> str:
        if self.chain_hash:
            return f"/{self.chain_hash}/public/{suffix}"
        return f"/public/{suffix}"

    def _request(self, method: str, path: str, *, params: Optional[dict] = None) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        logger.debug(f"beacon request {method.upper()} {url}")
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=self.headers,
            params=params,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    def latest(self) -> dict:
        """Return the most recent beacon round."""
        return self._request("GET", self._path("latest"))

    def round(self, round_number: int) -> dict:
        """Return a specific beacon round, for replaying an earlier draw."""
        return self._request("GET", self._path(str(int(round_number))))


def randomness_from_round(payload: Optional[dict]) -> bytes:
    """Decode the ``randomness`` hex field of a beacon round."""

    if not payload or "randomness" not in payload:
        raise InvalidInputError("Beacon response has no randomness field")
    try:
        seed = bytes.fromhex(payload["randomness"])
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("Beacon randomness is not valid hex") from exc
    if len(seed) < MIN_SEED_LENGTH:
        raise InvalidInputError(
            f"Beacon randomness must contain at least {MIN_SEED_LENGTH} bytes",
            details=len(seed),
        )
    return seed


class BeaconSeedSource:
    """Seed source reading the latest round of a :class:`BeaconClient`."""

    def __init__(self, client: Optional[BeaconClient] = None) -> None:
        self.client = client or BeaconClient()
        self.last_round: Optional[int] = None

    def random_seed(self) -> bytes:
        try:
            payload = self.client.latest()
        except requests.RequestException as exc:
            raise InvalidStateError(
                "Randomness beacon is unavailable", details=self.client.base_url
            ) from exc
        seed = randomness_from_round(payload)
        self.last_round = payload.get("round")
        logger.debug(f"beacon seed taken from round {self.last_round}")
        return seed


__all__ = ["BeaconClient", "BeaconSeedSource", "randomness_from_round"]
