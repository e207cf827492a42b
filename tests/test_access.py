import unittest

from application.access import (
    DenialReason,
    authorize_join,
    authorize_leave,
    authorize_view,
)
from domain.models import Group, Identity, group_key


def make_group(privacy: bool, members=("alice",), secret: str = "xyz9") -> Group:
    return Group(
        key=group_key("algo-club"),
        name="algo-club",
        secret=secret,
        privacy=privacy,
        members=list(members),
    )


class AuthorizeViewTests(unittest.TestCase):
    def test_public_group_is_visible_to_anyone(self):
        group = make_group(privacy=False)
        callers = [
            Identity.none(),
            Identity.anonymous("mallory"),
            Identity.linked("carol"),
            Identity.linked("alice"),
        ]
        for identity in callers:
            for code in (None, "", "wrong", "xyz9"):
                decision = authorize_view(group, identity, code)
                self.assertTrue(decision.granted, (identity, code))

    def test_missing_group_is_denied(self):
        decision = authorize_view(None, Identity.linked("alice"), "xyz9")
        self.assertFalse(decision.granted)
        self.assertIs(decision.reason, DenialReason.GROUP_NOT_FOUND)

    def test_private_group_denies_unlinked_caller_without_code(self):
        decision = authorize_view(make_group(privacy=True), Identity.none(), "wrong")
        self.assertFalse(decision.granted)
        self.assertIs(decision.reason, DenialReason.NO_LINKED_ACCOUNT)

    def test_private_group_denies_linked_non_member_without_code(self):
        decision = authorize_view(make_group(privacy=True), Identity.linked("bob"), None)
        self.assertFalse(decision.granted)
        self.assertIs(decision.reason, DenialReason.NOT_A_MEMBER)

    def test_private_group_denies_anonymous_non_member_without_code(self):
        decision = authorize_view(make_group(privacy=True), Identity.anonymous("bob"), None)
        self.assertFalse(decision.granted)
        self.assertIs(decision.reason, DenialReason.NOT_A_MEMBER)

    def test_correct_code_prompts_non_member_without_revealing_secret(self):
        for identity in (Identity.linked("bob"), Identity.anonymous("bob"), Identity.none()):
            decision = authorize_view(make_group(privacy=True), identity, "xyz9")
            self.assertTrue(decision.granted)
            self.assertTrue(decision.prompt_to_join)
            self.assertEqual(decision.secret, "")

    def test_member_sees_secret_without_code(self):
        group = make_group(privacy=True, members=("alice", "bob"))
        for identity in (Identity.linked("bob"), Identity.anonymous("bob")):
            decision = authorize_view(group, identity, None)
            self.assertTrue(decision.granted)
            self.assertFalse(decision.prompt_to_join)
            self.assertEqual(decision.secret, "xyz9")

    def test_member_with_code_is_not_prompted(self):
        decision = authorize_view(make_group(privacy=True), Identity.linked("alice"), "xyz9")
        self.assertFalse(decision.prompt_to_join)
        self.assertEqual(decision.secret, "xyz9")

    def test_public_group_never_reveals_secret_to_non_member(self):
        decision = authorize_view(make_group(privacy=False), Identity.linked("bob"), "xyz9")
        self.assertTrue(decision.prompt_to_join)
        self.assertEqual(decision.secret, "")


class AuthorizeJoinTests(unittest.TestCase):
    def test_denial_priority(self):
        group = make_group(privacy=True)
        self.assertIs(
            authorize_join(None, "bob", "xyz9", None).reason,
            DenialReason.GROUP_NOT_FOUND,
        )
        # A wrong code wins over an existing membership.
        self.assertIs(
            authorize_join(group, "alice", "nope", None).reason,
            DenialReason.SECRET_MISMATCH,
        )
        # An existing membership wins over missing proof.
        self.assertIs(
            authorize_join(group, "alice", "xyz9", "no secret here").reason,
            DenialReason.ALREADY_MEMBER,
        )
        self.assertIs(
            authorize_join(group, "bob", "xyz9", "no secret here").reason,
            DenialReason.PROOF_MISSING,
        )

    def test_grants_with_proof(self):
        decision = authorize_join(make_group(True), "bob", "xyz9", "hello xyz9 world")
        self.assertTrue(decision.granted)

    def test_proof_check_skipped_when_no_proof_text_given(self):
        self.assertTrue(authorize_join(make_group(True), "bob", "xyz9", None).granted)


class AuthorizeLeaveTests(unittest.TestCase):
    def test_owner_cannot_leave_even_when_listed_as_member(self):
        group = make_group(privacy=False, members=("alice", "bob"))
        decision = authorize_leave(group, "alice", [group.key])
        self.assertFalse(decision.granted)
        self.assertIs(decision.reason, DenialReason.OWNER_CANNOT_LEAVE)

    def test_non_member_cannot_leave(self):
        decision = authorize_leave(make_group(False), "bob", [])
        self.assertIs(decision.reason, DenialReason.NOT_A_MEMBER)

    def test_member_can_leave(self):
        group = make_group(False, members=("alice", "bob"))
        self.assertTrue(authorize_leave(group, "bob", []).granted)

    def test_proof_text_must_contain_secret(self):
        group = make_group(False, members=("alice", "bob"))
        denied = authorize_leave(group, "bob", [], "no code here")
        self.assertIs(denied.reason, DenialReason.PROOF_MISSING)
        self.assertTrue(authorize_leave(group, "bob", [], "code: xyz9").granted)


if __name__ == "__main__":
    unittest.main()
