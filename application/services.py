from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

from application import ledger
from application.access import (
    Decision,
    DenialReason,
    authorize_join,
    authorize_leave,
    authorize_view,
)
from application.aggregator import aggregate
from application.identity import is_anonymous_token, load_account, resolve, strip_anon_marker
from domain.errors import (
    AlreadyMember,
    Conflict,
    Forbidden,
    GroupsError,
    Invalid,
    NotFound,
    UpstreamNotFound,
)
from domain.models import (
    Account,
    Group,
    IdentityKind,
    NO_TOKEN,
    MemberStatSnapshot,
    handle_key,
    normalize_key,
)
from domain.repositories import ACCOUNTS, ContentModerator, DocumentStore, StatisticsProvider


logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Generic result type for simple operations."""

    success: bool
    message: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass
class LeaderboardResult:
    """Ranked members of a group plus what the caller is allowed to see."""

    success: bool
    group_name: str = ""
    total_members: int = 0
    members: List[MemberStatSnapshot] = field(default_factory=list)
    prompt_to_join: bool = False
    group_secret: str = ""
    error_message: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass
class ProfileResult:
    """A linked account's memberships and its own live statistics."""

    success: bool
    username: str = ""
    user_avatar: str = ""
    groups: List[str] = field(default_factory=list)
    owned: List[Tuple[str, Optional[Group]]] = field(default_factory=list)
    total: Optional[int] = None
    easy: Optional[int] = None
    medium: Optional[int] = None
    hard: Optional[int] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None


_DENIAL_ERRORS: Dict[DenialReason, Type[GroupsError]] = {
    DenialReason.GROUP_NOT_FOUND: NotFound,
    DenialReason.NO_LINKED_ACCOUNT: Forbidden,
    DenialReason.NOT_A_MEMBER: Forbidden,
    DenialReason.SECRET_MISMATCH: Forbidden,
    DenialReason.ALREADY_MEMBER: AlreadyMember,
    DenialReason.PROOF_MISSING: Forbidden,
    DenialReason.OWNER_CANNOT_LEAVE: Forbidden,
}


def _raise_if_denied(
    decision: Decision,
    overrides: Optional[Dict[DenialReason, Type[GroupsError]]] = None,
) -> None:
    if decision.granted or decision.reason is None:
        return
    errors = dict(_DENIAL_ERRORS)
    errors.update(overrides or {})
    raise errors[decision.reason](decision.reason.value)


def _require(**fields: object) -> None:
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise Invalid(f"Missing required fields: {', '.join(missing)}")


def _failed(exc: GroupsError) -> OperationResult:
    return OperationResult(success=False, error_message=exc.message, error_kind=exc.kind)


def _linked_handle(token: str, store: DocumentStore) -> str:
    identity = resolve(token, store)
    if identity.kind is not IdentityKind.LINKED or identity.handle is None:
        raise NotFound(
            "Your account is not linked. Please link your account first."
        )
    return identity.handle


async def fetch_leaderboard(
    group_name: str,
    token: str,
    code: Optional[str],
    store: DocumentStore,
    provider: StatisticsProvider,
) -> LeaderboardResult:
    """
    Return the ranked leaderboard of a group for the given caller.

    The group secret is echoed back only to existing members; a non-member
    holding the right code is instead asked whether they want to join.
    """

    try:
        _require(group_name=group_name)
        group = ledger.require_group(store, group_name)
        identity = resolve(token, store)
        decision = authorize_view(group, identity, code)
        _raise_if_denied(decision)
    except GroupsError as exc:
        return LeaderboardResult(
            success=False,
            group_name=group_name or "",
            error_message=exc.message,
            error_kind=exc.kind,
        )

    members = await aggregate(group.members, provider)
    return LeaderboardResult(
        success=True,
        group_name=group.name,
        total_members=len(group.members),
        members=members,
        prompt_to_join=decision.prompt_to_join,
        group_secret=decision.secret,
    )


async def register_account(
    token: str,
    handle: str,
    store: DocumentStore,
    provider: StatisticsProvider,
) -> OperationResult:
    """
    Link `token` to an external handle.

    The caller proves control of the handle by putting the token into the
    handle's public profile text. A token can be linked only once.
    """

    try:
        _require(token=token, handle=handle)
        token = token.strip()
        if is_anonymous_token(token) or token == NO_TOKEN:
            raise Invalid("This token cannot be linked to an account.")
        if load_account(token, store) is not None:
            raise Conflict("User already linked.")

        try:
            profile = await provider.fetch_profile(handle_key(handle))
        except UpstreamNotFound:
            raise NotFound(f"User {handle} not found upstream.") from None

        if token not in (profile.about_me or ""):
            raise Forbidden(
                "Please add your token to your profile about section."
            )

        account = Account(
            token=token,
            username=handle_key(profile.username or handle),
            user_avatar=profile.avatar_url,
        )
        store.set(ACCOUNTS, token, account.to_document())
    except GroupsError as exc:
        return _failed(exc)

    logger.info("Linked account to handle %s", account.username)
    return OperationResult(success=True, message=f"Registered as {account.username}.")


def join_linked(
    token: str,
    group_name: str,
    code: Optional[str],
    store: DocumentStore,
) -> OperationResult:
    """
    Join a group as the handle linked to `token`.

    The handle was proven at registration, so no profile proof is asked for.
    """

    try:
        _require(token=token, group_name=group_name)
        handle = _linked_handle(token, store)
        group = ledger.require_group(store, group_name)
        _raise_if_denied(authorize_join(group, handle, code, None))
        ledger.join_group(store, group, handle)
    except GroupsError as exc:
        return _failed(exc)

    logger.info("%s joined group %s", handle, group.key)
    return OperationResult(success=True, message="User successfully added to group.")


async def join_anonymous(
    anon_handle: str,
    group_name: str,
    code: Optional[str],
    store: DocumentStore,
    provider: StatisticsProvider,
) -> OperationResult:
    """
    Join a group as a bare handle, without a linked account.

    The group secret must appear in that handle's public profile text.
    """

    try:
        _require(handle=anon_handle, group_name=group_name)
        raw = anon_handle.strip()
        if is_anonymous_token(raw):
            raw = strip_anon_marker(raw)
        handle = handle_key(raw)
        if not handle:
            raise Invalid("Missing required fields: handle")

        group = ledger.require_group(store, group_name)
        _raise_if_denied(authorize_join(group, handle, code, None))

        try:
            profile = await provider.fetch_profile(handle)
        except UpstreamNotFound:
            raise NotFound(f"User {handle} not found upstream.") from None

        _raise_if_denied(authorize_join(group, handle, code, profile.about_me or ""))
        ledger.join_group(store, group, handle)
    except GroupsError as exc:
        return _failed(exc)

    logger.info("%s joined group %s anonymously", handle, group.key)
    return OperationResult(success=True, message="User successfully added to group.")


async def leave(
    token: str,
    group_name: str,
    store: DocumentStore,
    provider: StatisticsProvider,
) -> OperationResult:
    """
    Leave a group as a linked account or as an `anon-` prefixed handle.

    An anonymous caller has to show control of the handle the same way an
    anonymous join does: the group secret must be in its profile text.
    """

    try:
        _require(token=token, group_name=group_name)
        identity = resolve(token, store)
        if identity.is_none or identity.handle is None:
            raise NotFound(
                "Your account is not linked. Please link your account first."
            )
        handle = identity.handle

        group = ledger.require_group(store, group_name)
        record = ledger.load_user_record(store, handle)
        owned = record.owned if record is not None else []
        not_member = {DenialReason.NOT_A_MEMBER: NotFound}
        _raise_if_denied(authorize_leave(group, handle, owned), not_member)

        if identity.kind is IdentityKind.ANONYMOUS:
            try:
                profile = await provider.fetch_profile(handle)
            except UpstreamNotFound:
                raise NotFound(f"User {handle} not found upstream.") from None
            _raise_if_denied(
                authorize_leave(group, handle, owned, profile.about_me or ""),
                not_member,
            )

        ledger.leave_group(store, group, handle)
    except GroupsError as exc:
        return _failed(exc)

    logger.info("%s left group %s", handle, group.key)
    return OperationResult(success=True, message="User removed from group.")


def create_group(
    group_name: str,
    secret: str,
    privacy: Optional[bool],
    token: str,
    store: DocumentStore,
    moderator: ContentModerator,
) -> OperationResult:
    """
    Create a group owned by the account linked to `token`.

    Name and secret are screened by the moderator first; anonymous callers
    can never own a group.
    """

    try:
        _require(group_name=normalize_key(group_name or ""), secret=secret)
        if not moderator.is_appropriate(group_name, secret):
            raise Forbidden("The data is not appropriate. Please try again.")

        identity = resolve(token or "", store)
        if identity.kind is IdentityKind.ANONYMOUS:
            raise Forbidden("Anonymous members cannot own a group.")
        if identity.kind is not IdentityKind.LINKED or identity.handle is None:
            raise NotFound("User not registered. Please register first.")

        group = ledger.create_group(
            store, group_name, secret, bool(privacy), identity.handle
        )
    except GroupsError as exc:
        return _failed(exc)

    logger.info("%s created group %s", identity.handle, group.key)
    return OperationResult(success=True, message="Group created successfully.")


def delete_group(token: str, group_name: str, store: DocumentStore) -> OperationResult:
    """Delete a group; only its owner may do so."""

    try:
        _require(token=token, group_name=group_name)
        handle = _linked_handle(token, store)
        group = ledger.require_group(store, group_name)
        ledger.delete_group(store, group, handle)
    except GroupsError as exc:
        return _failed(exc)

    logger.info("%s deleted group %s", handle, group.key)
    return OperationResult(success=True, message="Group deleted successfully.")


def change_privacy(
    group_name: str,
    privacy: Optional[bool],
    store: DocumentStore,
) -> OperationResult:
    try:
        _require(group_name=group_name, privacy=privacy)
        group = ledger.require_group(store, group_name)
        ledger.set_privacy(store, group, bool(privacy))
    except GroupsError as exc:
        return _failed(exc)

    state = "private" if group.privacy else "public"
    return OperationResult(success=True, message=f"Group {group.name} is now {state}.")


def change_secret(
    group_name: str,
    new_secret: str,
    store: DocumentStore,
) -> OperationResult:
    try:
        _require(group_name=group_name, new_secret=new_secret)
        group = ledger.require_group(store, group_name)
        ledger.set_secret(store, group, new_secret)
    except GroupsError as exc:
        return _failed(exc)

    return OperationResult(success=True, message="Group secret updated successfully.")


def account_status(token: str, store: DocumentStore) -> bool:
    """Return whether `token` is linked to an account."""

    if not token:
        return False
    return load_account(token.strip(), store) is not None


async def user_profile(
    token: str,
    store: DocumentStore,
    provider: StatisticsProvider,
) -> ProfileResult:
    """
    Collect a linked account's groups, owned groups and live counts.

    An account with no user record yet gets an empty one.
    """

    try:
        _require(token=token)
        account = load_account(token.strip(), store)
        if account is None:
            raise NotFound("User not found.")

        record = ledger.ensure_user_record(store, account.username)
        owned = [(key, ledger.load_group(store, key)) for key in record.owned]
        profile = await provider.fetch_profile(account.username)
    except GroupsError as exc:
        return ProfileResult(
            success=False, error_message=exc.message, error_kind=exc.kind
        )

    return ProfileResult(
        success=True,
        username=account.username,
        user_avatar=account.user_avatar,
        groups=list(record.groups),
        owned=owned,
        total=profile.total,
        easy=profile.easy,
        medium=profile.medium,
        hard=profile.hard,
    )


def owns_group(token: str, group_name: str, store: DocumentStore) -> bool:
    """Return whether the account linked to `token` owns `group_name`."""

    identity = resolve(token, store)
    if identity.kind is not IdentityKind.LINKED or identity.handle is None:
        return False
    group = ledger.load_group(store, group_name)
    return group is not None and ledger.is_owner(store, group, identity.handle)
