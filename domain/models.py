from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NewType, Optional


GroupKey = NewType("GroupKey", str)
Handle = NewType("Handle", str)

ANON_MARKER = "anon-"
NO_TOKEN = "none"

_WHITESPACE = re.compile(r"\s+")


def normalize_key(raw: str) -> str:
    """Collapse internal whitespace and trim; applied to every store key."""

    return _WHITESPACE.sub(" ", str(raw)).strip()


def group_key(name: str) -> GroupKey:
    # Group names are unique regardless of case.
    return GroupKey(normalize_key(name).casefold())


def handle_key(raw: str) -> Handle:
    return Handle(normalize_key(raw))


@dataclass
class Group:
    """
    A named group gathered around external profile handles.

    `members` keeps insertion order; uniqueness is enforced by the ledger,
    not by the store.
    """

    key: GroupKey
    name: str
    secret: str
    privacy: bool = False
    members: List[Handle] = field(default_factory=list)

    def has_member(self, handle: str) -> bool:
        return handle_key(handle) in self.members

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "secret": self.secret,
            "privacy": self.privacy,
            "members": list(self.members),
        }

    @classmethod
    def from_document(cls, key: GroupKey, doc: Dict[str, Any]) -> "Group":
        return cls(
            key=key,
            name=doc.get("name") or key,
            secret=doc.get("secret") or "",
            privacy=bool(doc.get("privacy", False)),
            members=[Handle(m) for m in doc.get("members") or []],
        )


@dataclass
class Account:
    """
    A caller token bound to an external profile handle.

    The binding is created once, after the holder proved control of the
    handle, and is never rewritten.
    """

    token: str
    username: Handle
    user_avatar: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {"username": self.username, "userAvatar": self.user_avatar}

    @classmethod
    def from_document(cls, token: str, doc: Dict[str, Any]) -> "Account":
        return cls(
            token=token,
            username=handle_key(doc.get("username") or ""),
            user_avatar=doc.get("userAvatar") or "",
        )


@dataclass
class UserRecord:
    """Per-handle view of the groups a handle belongs to and owns."""

    handle: Handle
    groups: List[GroupKey] = field(default_factory=list)
    owned: List[GroupKey] = field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return {"groups": list(self.groups), "owned": list(self.owned)}

    @classmethod
    def from_document(cls, handle: Handle, doc: Dict[str, Any]) -> "UserRecord":
        return cls(
            handle=handle,
            groups=[GroupKey(g) for g in doc.get("groups") or []],
            owned=[GroupKey(g) for g in doc.get("owned") or []],
        )


class IdentityKind(Enum):
    LINKED = "linked"
    ANONYMOUS = "anonymous"
    NONE = "none"


@dataclass(frozen=True)
class Identity:
    """Who is calling: a linked account, an anonymous handle, or nobody."""

    kind: IdentityKind
    handle: Optional[Handle] = None

    @classmethod
    def linked(cls, handle: str) -> "Identity":
        return cls(IdentityKind.LINKED, handle_key(handle))

    @classmethod
    def anonymous(cls, handle: str) -> "Identity":
        return cls(IdentityKind.ANONYMOUS, handle_key(handle))

    @classmethod
    def none(cls) -> "Identity":
        return cls(IdentityKind.NONE)

    @property
    def is_none(self) -> bool:
        return self.kind is IdentityKind.NONE


@dataclass
class ProfileStats:
    """What the statistics provider knows about one handle."""

    username: str
    display_name: str
    avatar_url: str
    about_me: str
    total: int
    easy: int
    medium: int
    hard: int


@dataclass
class MemberStatSnapshot:
    """Statistics for one member, computed per request and never stored."""

    handle: Handle
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    total_solved: Optional[int] = None
    easy: Optional[int] = None
    medium: Optional[int] = None
    hard: Optional[int] = None
    score: Optional[int] = None
    fetch_error: Optional[str] = None
