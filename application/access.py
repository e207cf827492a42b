from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from domain.models import Group, Identity, handle_key


class DenialReason(Enum):
    GROUP_NOT_FOUND = "Group does not exist, or was deleted."
    NO_LINKED_ACCOUNT = "Group is private. Please ask for an invite."
    NOT_A_MEMBER = "You are not a member of this group. Please ask for an invite."
    SECRET_MISMATCH = "Invalid group secret."
    ALREADY_MEMBER = "User is already a member of this group."
    PROOF_MISSING = "Group secret not found in profile text."
    OWNER_CANNOT_LEAVE = "You own this group; delete it instead of leaving."


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    granted: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def grant(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "Decision":
        return cls(False, reason)


@dataclass(frozen=True)
class ViewDecision(Decision):
    """
    A view decision plus the flags the presentation layer needs.

    `secret` is only ever populated for callers that are already members.
    """

    prompt_to_join: bool = False
    secret: str = ""


def _is_member(group: Group, identity: Identity) -> bool:
    if identity.is_none or identity.handle is None:
        return False
    return identity.handle in group.members


def authorize_view(
    group: Optional[Group],
    identity: Identity,
    supplied_code: Optional[str],
) -> ViewDecision:
    """
    Decide whether `identity` may see the leaderboard of `group`.

    Public groups are always visible. Private groups are visible to callers
    holding the right code and to existing members, linked or anonymous.
    """

    if group is None:
        return ViewDecision(False, DenialReason.GROUP_NOT_FOUND)

    member = _is_member(group, identity)
    code_ok = supplied_code is not None and supplied_code == group.secret

    if group.privacy and not code_ok and not member:
        if identity.is_none:
            return ViewDecision(False, DenialReason.NO_LINKED_ACCOUNT)
        return ViewDecision(False, DenialReason.NOT_A_MEMBER)

    return ViewDecision(
        True,
        prompt_to_join=code_ok and not member,
        secret=group.secret if member else "",
    )


def authorize_join(
    group: Optional[Group],
    candidate_handle: str,
    supplied_code: Optional[str],
    proof_text: Optional[str],
) -> Decision:
    """
    Decide whether `candidate_handle` may join `group`.

    Checks run in priority order: group exists, code matches, not yet a
    member, proof holds. Passing `proof_text=None` skips the proof check
    for callers that established control of the handle some other way.
    """

    if group is None:
        return Decision.deny(DenialReason.GROUP_NOT_FOUND)
    if supplied_code != group.secret:
        return Decision.deny(DenialReason.SECRET_MISMATCH)
    if group.has_member(candidate_handle):
        return Decision.deny(DenialReason.ALREADY_MEMBER)
    if proof_text is not None and group.secret not in proof_text:
        return Decision.deny(DenialReason.PROOF_MISSING)
    return Decision.grant()


def authorize_leave(
    group: Optional[Group],
    candidate_handle: str,
    owned: Iterable[str],
    proof_text: Optional[str] = None,
) -> Decision:
    """
    Decide whether `candidate_handle` may leave `group`.

    `owned` is the candidate's owned-group keys. Owners are refused even
    when they are also listed as ordinary members. As with joins, a
    `proof_text` that is given must contain the group secret.
    """

    if group is None:
        return Decision.deny(DenialReason.GROUP_NOT_FOUND)
    if group.key in set(owned):
        return Decision.deny(DenialReason.OWNER_CANNOT_LEAVE)
    if not group.has_member(handle_key(candidate_handle)):
        return Decision.deny(DenialReason.NOT_A_MEMBER)
    if proof_text is not None and group.secret not in proof_text:
        return Decision.deny(DenialReason.PROOF_MISSING)
    return Decision.grant()
