from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence, Tuple

from domain.errors import UpstreamError, UpstreamNotFound
from domain.models import Handle, MemberStatSnapshot, ProfileStats, handle_key
from domain.repositories import StatisticsProvider


logger = logging.getLogger(__name__)

EASY_POINTS = 1
MEDIUM_POINTS = 2
HARD_POINTS = 3


def compute_score(easy: int, medium: int, hard: int) -> int:
    return easy * EASY_POINTS + medium * MEDIUM_POINTS + hard * HARD_POINTS


def snapshot_from_profile(handle: Handle, profile: ProfileStats) -> MemberStatSnapshot:
    return MemberStatSnapshot(
        handle=handle,
        display_name=profile.display_name or handle,
        avatar_url=profile.avatar_url,
        total_solved=profile.total,
        easy=profile.easy,
        medium=profile.medium,
        hard=profile.hard,
        score=compute_score(profile.easy, profile.medium, profile.hard),
    )


def _rank_key(snapshot: MemberStatSnapshot) -> Tuple[int, int, int]:
    # Scored first (by score, then solved count); then unscored with a
    # known solved count; then everything else.
    if snapshot.score is not None:
        total = snapshot.total_solved if snapshot.total_solved is not None else -1
        return (0, -snapshot.score, -total)
    if snapshot.total_solved is not None:
        return (1, 0, -snapshot.total_solved)
    return (2, 0, 0)


def rank_snapshots(snapshots: Sequence[MemberStatSnapshot]) -> List[MemberStatSnapshot]:
    """
    Order snapshots for display.

    The sort is stable, so full ties keep their input order and ranking an
    already ranked list leaves it unchanged.
    """

    return sorted(snapshots, key=_rank_key)


async def _collect_one(
    handle: Handle,
    provider: StatisticsProvider,
) -> MemberStatSnapshot:
    try:
        profile = await provider.fetch_profile(handle)
    except UpstreamNotFound:
        logger.info("Member %s not found upstream", handle)
        return MemberStatSnapshot(handle=handle, fetch_error="User not found")
    except UpstreamError as exc:
        logger.info("Failed to fetch stats for member %s: %s", handle, exc)
        return MemberStatSnapshot(handle=handle, fetch_error="Failed to fetch user data")
    return snapshot_from_profile(handle, profile)


async def aggregate(
    members: Sequence[str],
    provider: StatisticsProvider,
) -> List[MemberStatSnapshot]:
    """
    Fetch every member's statistics concurrently and return them ranked.

    One lookup is issued per handle and all of them are awaited before
    ranking. A failing lookup yields a snapshot with `fetch_error` set
    instead of failing the whole batch. The result order depends only on
    the ranking rules, never on which lookup finished first, because
    `gather` returns results in input order.
    """

    handles = [handle_key(m) for m in members]
    if not handles:
        return []

    snapshots = await asyncio.gather(
        *(_collect_one(handle, provider) for handle in handles)
    )
    return rank_snapshots(snapshots)
