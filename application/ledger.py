from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from domain.errors import Conflict, Forbidden, Invalid, NotFound
from domain.models import (
    Group,
    GroupKey,
    Handle,
    UserRecord,
    group_key,
    handle_key,
    normalize_key,
)
from domain.repositories import GROUPS, USERS, DocumentStore


logger = logging.getLogger(__name__)


# Every mutating operation below is a sequence of independent writes. There is
# no transaction spanning the group document and the user records, and no
# version check on `members`: two joins working from the same loaded Group
# both write their own list and the later write wins.


def load_group(store: DocumentStore, name: str) -> Optional[Group]:
    key = group_key(name)
    if not key:
        return None
    doc = store.get(GROUPS, key)
    if doc is None:
        return None
    return Group.from_document(key, doc)


def load_user_record(store: DocumentStore, handle: str) -> Optional[UserRecord]:
    key = handle_key(handle)
    doc = store.get(USERS, key)
    if doc is None:
        return None
    return UserRecord.from_document(key, doc)


def ensure_user_record(store: DocumentStore, handle: str) -> UserRecord:
    """Return the record for `handle`, creating an empty one if absent."""

    record = load_user_record(store, handle)
    if record is None:
        record = UserRecord(handle=handle_key(handle))
        store.set(USERS, record.handle, record.to_document())
    return record


def is_owner(store: DocumentStore, group: Group, handle: str) -> bool:
    record = load_user_record(store, handle)
    return record is not None and group.key in record.owned


def _add_group_to_user(
    store: DocumentStore,
    handle: Handle,
    key: GroupKey,
    owned: bool = False,
) -> None:
    record = load_user_record(store, handle)
    if record is None:
        record = UserRecord(handle=handle)
        record.groups.append(key)
        if owned:
            record.owned.append(key)
        store.set(USERS, handle, record.to_document())
        return

    changed = False
    if key not in record.groups:
        record.groups.append(key)
        changed = True
    if owned and key not in record.owned:
        record.owned.append(key)
        changed = True
    if changed:
        store.update(USERS, handle, record.to_document())


def create_group(
    store: DocumentStore,
    name: str,
    secret: str,
    privacy: bool,
    creator: str,
) -> Group:
    """
    Create a group owned by `creator`, who becomes its only member.

    Raises `Conflict` if a group with the same normalized name exists.
    """

    display_name = normalize_key(name)
    if not display_name:
        raise Invalid("Group name is required.")
    if not secret:
        raise Invalid("Group secret is required.")

    key = group_key(display_name)
    if store.get(GROUPS, key) is not None:
        raise Conflict("The group name is taken. Please choose a different name.")

    creator_handle = handle_key(creator)
    group = Group(
        key=key,
        name=display_name,
        secret=secret,
        privacy=bool(privacy),
        members=[creator_handle],
    )
    store.set(GROUPS, key, group.to_document())
    _add_group_to_user(store, creator_handle, key, owned=True)
    return group


def join_group(store: DocumentStore, group: Group, handle: str) -> Group:
    """
    Add `handle` to `group` and record the membership on the user side.

    Joining twice leaves both sides unchanged.
    """

    member = handle_key(handle)
    if member not in group.members:
        group.members = [*group.members, member]
        store.update(GROUPS, group.key, {"members": list(group.members)})
    _add_group_to_user(store, member, group.key)
    return group


def leave_group(store: DocumentStore, group: Group, handle: str) -> Group:
    """
    Remove `handle` from `group` on both sides of the membership relation.

    Callers are expected to have checked `authorize_leave` first.
    """

    member = handle_key(handle)
    if member in group.members:
        group.members = [m for m in group.members if m != member]
        store.update(GROUPS, group.key, {"members": list(group.members)})

    record = load_user_record(store, member)
    if record is not None and group.key in record.groups:
        record.groups = [g for g in record.groups if g != group.key]
        store.update(USERS, member, {"groups": list(record.groups)})
    return group


def delete_group(store: DocumentStore, group: Group, requestor: str) -> None:
    """
    Delete `group` and strip it from every related user record.

    Only the recorded owner may delete. The cascade is best effort: a failing
    step is logged and skipped, the remaining steps still run, and the first
    failure is raised once the cascade is done. Completed writes are not
    rolled back.
    """

    owner = handle_key(requestor)
    owner_record = load_user_record(store, owner)
    if owner_record is None or group.key not in owner_record.owned:
        raise Forbidden("Only the owner of a group can delete it.")

    steps: List[Tuple[str, Callable[[], None]]] = []

    def drop_owned() -> None:
        owner_record.owned = [g for g in owner_record.owned if g != group.key]
        store.update(USERS, owner, {"owned": list(owner_record.owned)})

    steps.append((owner, drop_owned))

    for member in group.members:
        steps.append((member, _member_cleanup(store, member, group.key)))

    steps.append((group.key, lambda: store.delete(GROUPS, group.key)))

    first_error: Optional[Exception] = None
    for target, step in steps:
        try:
            step()
        except Exception as exc:
            logger.error(
                "Delete of group %s failed at %s: %s", group.key, target, exc
            )
            if first_error is None:
                first_error = exc

    if first_error is not None:
        raise first_error


def _member_cleanup(
    store: DocumentStore,
    member: Handle,
    key: GroupKey,
) -> Callable[[], None]:
    def run() -> None:
        record = load_user_record(store, member)
        if record is None:
            return
        record.groups = [g for g in record.groups if g != key]
        store.update(USERS, member, {"groups": list(record.groups)})

    return run


def set_privacy(store: DocumentStore, group: Group, privacy: bool) -> Group:
    group.privacy = bool(privacy)
    store.update(GROUPS, group.key, {"privacy": group.privacy})
    return group


def set_secret(store: DocumentStore, group: Group, secret: str) -> Group:
    if not secret:
        raise Invalid("Group secret is required.")
    group.secret = secret
    store.update(GROUPS, group.key, {"secret": group.secret})
    return group


def require_group(store: DocumentStore, name: str) -> Group:
    group = load_group(store, name)
    if group is None:
        raise NotFound("Group not found.")
    return group
