from __future__ import annotations


class GroupsError(Exception):
    """Base class for every expected failure of a group operation."""

    kind = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(GroupsError):
    kind = "not_found"


class Conflict(GroupsError):
    kind = "conflict"


class AlreadyMember(Conflict):
    """
    The handle is already in the group.

    Kept apart from other conflicts so callers can decide whether a repeated
    join is a success or a clash.
    """

    kind = "already_member"


class Forbidden(GroupsError):
    kind = "forbidden"


class Invalid(GroupsError):
    kind = "invalid"


class UpstreamError(GroupsError):
    """Any failure reported by the statistics provider."""

    kind = "upstream"


class UpstreamUnavailable(UpstreamError):
    kind = "upstream_unavailable"


class UpstreamNotFound(UpstreamError):
    kind = "upstream_not_found"
