import unittest

from application.services import LeaderboardResult, OperationResult
from domain.models import MemberStatSnapshot
from interfaces.formatting import format_leaderboard, format_result, parse_privacy
from interfaces.telegram.callback_data import (
    PendingJoinPrompts,
    encode_join_prompt,
    parse_join_prompt,
)


class CallbackDataTests(unittest.TestCase):
    def test_join_prompt_carries_only_the_prompt_id(self):
        prompts = PendingJoinPrompts()
        prompt_id = prompts.add("algo-club", "a-very-long-secret:" * 10, 42)
        data = encode_join_prompt(prompt_id)

        self.assertEqual(data, f"join:{prompt_id}")
        self.assertNotIn("algo-club", data)
        self.assertNotIn("secret", data)
        self.assertLessEqual(len(data.encode()), 64)
        self.assertEqual(parse_join_prompt(data), prompt_id)

    def test_rejects_foreign_data(self):
        for data in ("from:1:to:2:5", "join:", "join:algo-club:code", "leave:abc"):
            with self.assertRaises(ValueError):
                parse_join_prompt(data)


class PendingJoinPromptsTests(unittest.TestCase):
    def test_only_the_prompted_user_can_claim(self):
        prompts = PendingJoinPrompts()
        prompt_id = prompts.add("algo-club", "xyz9", 42)

        self.assertIsNone(prompts.claim(prompt_id, 7))
        self.assertTrue(prompts.is_known(prompt_id))

        self.assertEqual(prompts.claim(prompt_id, 42), ("algo-club", "xyz9"))
        self.assertFalse(prompts.is_known(prompt_id))
        self.assertIsNone(prompts.claim(prompt_id, 42))

    def test_unknown_prompt_cannot_be_claimed(self):
        self.assertIsNone(PendingJoinPrompts().claim("deadbeef", 42))

    def test_prompt_ids_are_unique(self):
        prompts = PendingJoinPrompts()
        first = prompts.add("algo-club", "xyz9", 42)
        second = prompts.add("algo-club", "xyz9", 42)
        self.assertNotEqual(first, second)


class FormattingTests(unittest.TestCase):
    def test_leaderboard_lines(self):
        result = LeaderboardResult(
            success=True,
            group_name="algo-club",
            total_members=2,
            members=[
                MemberStatSnapshot(
                    handle="alice", display_name="Alice", total_solved=17,
                    easy=10, medium=5, hard=2, score=26,
                ),
                MemberStatSnapshot(handle="ghost", fetch_error="User not found"),
            ],
        )
        lines = format_leaderboard(result).splitlines()
        self.assertEqual(lines[0], "algo-club (2 members)")
        self.assertTrue(lines[1].startswith("1. Alice (alice) - 26 pts, 17 solved"))
        self.assertEqual(lines[2], "2. ghost: User not found")

    def test_failed_results_show_error(self):
        failed = LeaderboardResult(success=False, error_message="Group not found.")
        self.assertEqual(format_leaderboard(failed), "Group not found.")
        self.assertEqual(
            format_result(OperationResult(success=False, error_message="nope")), "nope"
        )

    def test_parse_privacy(self):
        self.assertTrue(parse_privacy("Private"))
        self.assertFalse(parse_privacy("public"))
        with self.assertRaises(ValueError):
            parse_privacy("secretive")


if __name__ == "__main__":
    unittest.main()
