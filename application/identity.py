from __future__ import annotations

from typing import Optional

from domain.models import ANON_MARKER, NO_TOKEN, Account, Identity, normalize_key
from domain.repositories import ACCOUNTS, DocumentStore


def is_anonymous_token(token: str) -> bool:
    return token.startswith(ANON_MARKER)


def strip_anon_marker(token: str) -> str:
    return token[len(ANON_MARKER):]


def resolve(token: str, store: DocumentStore) -> Identity:
    """
    Map a caller-supplied token to an identity.

    - The sentinel "none" (or an empty token) resolves to no identity.
    - An `anon-` prefixed token is taken at face value as the handle it
      names; the store is not consulted.
    - Anything else is looked up as an account token. A token with no
      linked account is a normal outcome and resolves to no identity.
    """

    token = (token or "").strip()
    if not token or token == NO_TOKEN:
        return Identity.none()

    if is_anonymous_token(token):
        handle = strip_anon_marker(token)
        if not normalize_key(handle):
            return Identity.none()
        return Identity.anonymous(handle)

    account = load_account(token, store)
    if account is None:
        return Identity.none()
    return Identity.linked(account.username)


def load_account(token: str, store: DocumentStore) -> Optional[Account]:
    doc = store.get(ACCOUNTS, token)
    if doc is None:
        return None
    return Account.from_document(token, doc)
