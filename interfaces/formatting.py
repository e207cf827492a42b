from __future__ import annotations

from typing import List

from application.services import LeaderboardResult, OperationResult, ProfileResult


def format_result(result: OperationResult, fallback: str = "Done.") -> str:
    if result.success:
        return result.message or fallback
    return result.error_message or "Something went wrong."


def format_leaderboard(result: LeaderboardResult) -> str:
    """Render a leaderboard as plain text, one ranked member per line."""

    if not result.success:
        return result.error_message or "Could not load the leaderboard."

    lines: List[str] = [f"{result.group_name} ({result.total_members} members)"]
    for position, member in enumerate(result.members, start=1):
        if member.fetch_error:
            lines.append(f"{position}. {member.handle}: {member.fetch_error}")
            continue
        lines.append(
            f"{position}. {member.display_name} ({member.handle}) "
            f"- {member.score} pts, {member.total_solved} solved "
            f"[E {member.easy} / M {member.medium} / H {member.hard}]"
        )
    return "\n".join(lines)


def format_profile(result: ProfileResult) -> str:
    if not result.success:
        return result.error_message or "Could not load the profile."

    owned = ", ".join(
        group.name if group is not None else f"{key} (deleted)"
        for key, group in result.owned
    )
    return "\n".join(
        [
            f"{result.username}",
            f"Solved: {result.total} (E {result.easy} / M {result.medium} / H {result.hard})",
            f"Groups: {', '.join(result.groups) or '-'}",
            f"Owned: {owned or '-'}",
        ]
    )


HELP_TEXT = (
    "{p}register <handle>                 - link your LeetCode handle (put your id {id} in your profile about section first)\n"
    "{p}board <group> [code]              - show a group's leaderboard\n"
    "{p}join <group> <code>               - join a group with your linked account\n"
    "{p}joinanon <handle> <group> <code>  - join a group with a bare handle\n"
    "{p}leave <group> [handle]            - leave a group (give the handle for an anonymous membership)\n"
    "{p}create <group> <secret> [private] - create a group you own\n"
    "{p}delete <group>                    - delete a group you own\n"
    "{p}privacy <group> <public|private>  - change a group's visibility (owner only)\n"
    "{p}secret <group> <new secret>       - change a group's secret (owner only)\n"
    "{p}profile                           - show your groups and stats\n"
    "{p}status                            - check whether your account is linked\n"
)


def parse_privacy(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("private", "true", "on", "yes"):
        return True
    if lowered in ("public", "false", "off", "no"):
        return False
    raise ValueError(f"Unknown privacy value: {value}")
