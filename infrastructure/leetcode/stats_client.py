from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from domain.errors import UpstreamNotFound, UpstreamUnavailable
from domain.models import ProfileStats
from domain.repositories import StatisticsProvider


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://leetcode.com/graphql"

PROFILE_QUERY = """
query userProfile($username: String!) {
  matchedUser(username: $username) {
    username
    profile {
      realName
      userAvatar
      aboutMe
    }
    submitStats {
      acSubmissionNum {
        difficulty
        count
      }
    }
  }
}
"""

_DIFFICULTIES = ("All", "Easy", "Medium", "Hard")


def _as_dict(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"expected an object, got {type(value).__name__}")
    return value


def _accepted_counts(entries: Any) -> List[int]:
    """
    Return accepted counts as [total, easy, medium, hard].

    Entries are matched by difficulty label; unlabeled payloads fall back to
    positional order.
    """

    if not isinstance(entries, list):
        raise TypeError(f"expected a list, got {type(entries).__name__}")
    entries = [_as_dict(e) for e in entries]

    by_label = {
        str(e.get("difficulty")): int(e["count"])
        for e in entries
        if e.get("difficulty") is not None
    }
    if all(label in by_label for label in _DIFFICULTIES):
        return [by_label[label] for label in _DIFFICULTIES]
    return [int(entries[i]["count"]) for i in range(len(_DIFFICULTIES))]


def parse_profile(handle: str, payload: Dict[str, Any]) -> ProfileStats:
    if payload.get("errors"):
        raise UpstreamNotFound(f"User {handle} not found upstream.")

    try:
        data = payload.get("data")
        user = _as_dict(data).get("matchedUser") if data is not None else None
        if user is None:
            raise UpstreamNotFound(f"User {handle} not found upstream.")

        user = _as_dict(user)
        profile = _as_dict(user.get("profile") or {})
        counts = _accepted_counts(_as_dict(user["submitStats"])["acSubmissionNum"])
        username = str(user.get("username") or handle)
        return ProfileStats(
            username=username,
            display_name=str(profile.get("realName") or username),
            avatar_url=str(profile.get("userAvatar") or ""),
            about_me=str(profile.get("aboutMe") or ""),
            total=counts[0],
            easy=counts[1],
            medium=counts[2],
            hard=counts[3],
        )
    except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamUnavailable(f"Malformed profile payload for {handle}.") from exc


class LeetCodeClient(StatisticsProvider):
    """
    GraphQL client for public LeetCode profiles.

    The underlying `httpx.AsyncClient` is created on first use unless one is
    injected, and is released by `aclose()` or by leaving the
    `async with` block.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_url = api_url
        self._timeout = timeout
        self._client = client

    async def __aenter__(self) -> "LeetCodeClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_profile(self, handle: str) -> ProfileStats:
        try:
            response = await self._http().post(
                self._api_url,
                json={"query": PROFILE_QUERY, "variables": {"username": handle}},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("LeetCode request for %s failed: %s", handle, exc)
            raise UpstreamUnavailable("No usable response received from LeetCode.") from exc
        except ValueError as exc:
            logger.warning("LeetCode returned non-JSON body for %s", handle)
            raise UpstreamUnavailable("Malformed response from LeetCode.") from exc

        if not isinstance(payload, dict):
            raise UpstreamUnavailable("Malformed response from LeetCode.")
        return parse_profile(handle, payload)
