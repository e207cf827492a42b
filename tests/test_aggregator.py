import unittest

from application.aggregator import aggregate, compute_score, rank_snapshots
from domain.errors import UpstreamUnavailable
from domain.models import MemberStatSnapshot
from fakes import FakeStatisticsProvider, make_profile


def snap(handle, score=None, total=None, error=None) -> MemberStatSnapshot:
    return MemberStatSnapshot(
        handle=handle, score=score, total_solved=total, fetch_error=error
    )


class RankingTests(unittest.TestCase):
    def test_score_formula(self):
        self.assertEqual(compute_score(easy=4, medium=3, hard=2), 4 + 6 + 6)

    def test_three_tier_order_on_mixed_input(self):
        snapshots = [
            snap("none-a", error="boom"),
            snap("total-only", total=500),
            snap("low", score=10, total=10),
            snap("none-b", error="boom"),
            snap("high", score=50, total=20),
            snap("tie-more-solved", score=10, total=12),
        ]
        ranked = [s.handle for s in rank_snapshots(snapshots)]
        self.assertEqual(
            ranked,
            ["high", "tie-more-solved", "low", "total-only", "none-a", "none-b"],
        )

    def test_full_ties_keep_input_order(self):
        snapshots = [snap("c", 5, 5), snap("a", 5, 5), snap("b", 5, 5)]
        self.assertEqual([s.handle for s in rank_snapshots(snapshots)], ["c", "a", "b"])

    def test_ranking_is_idempotent(self):
        snapshots = [
            snap("x", error="boom"),
            snap("y", 3, 3),
            snap("z", total=7),
            snap("w", 3, 4),
        ]
        once = rank_snapshots(snapshots)
        self.assertEqual(rank_snapshots(once), once)


class AggregateTests(unittest.IsolatedAsyncioTestCase):
    async def test_empty_member_list(self):
        self.assertEqual(await aggregate([], FakeStatisticsProvider()), [])

    async def test_all_failures_keep_input_order(self):
        provider = FakeStatisticsProvider()
        provider.fail("b", UpstreamUnavailable("down"))
        result = await aggregate(["c", "a", "b"], provider)
        self.assertEqual([s.handle for s in result], ["c", "a", "b"])
        self.assertTrue(all(s.fetch_error for s in result))
        self.assertTrue(all(s.score is None for s in result))
        self.assertEqual(result[2].fetch_error, "Failed to fetch user data")
        self.assertEqual(result[0].fetch_error, "User not found")

    async def test_partial_failure_does_not_fail_batch(self):
        provider = FakeStatisticsProvider()
        provider.add(make_profile("alice", easy=10, medium=5, hard=1))
        provider.add(make_profile("bob", easy=1, medium=1, hard=5))
        provider.fail("carol", UpstreamUnavailable("timeout"))

        result = await aggregate(["carol", "alice", "bob"], provider)

        self.assertEqual([s.handle for s in result], ["alice", "bob", "carol"])
        alice = result[0]
        self.assertEqual(alice.score, 23)
        self.assertEqual(alice.total_solved, 16)
        self.assertEqual(alice.display_name, "Alice")
        self.assertIsNone(alice.fetch_error)
        self.assertEqual(result[1].score, 18)

    async def test_lookups_run_concurrently_and_completion_order_does_not_leak(self):
        provider = FakeStatisticsProvider()
        for name, hard in (("slow", 1), ("mid", 1), ("fast", 1)):
            provider.add(make_profile(name, hard=hard))
        provider.delays = {"slow": 0.05, "mid": 0.02, "fast": 0.0}

        result = await aggregate(["slow", "mid", "fast"], provider)

        # Every lookup was issued before the first one finished.
        self.assertEqual(provider.calls, ["slow", "mid", "fast"])
        self.assertEqual(provider.completed, ["fast", "mid", "slow"])
        # Equal scores: the ranking falls back to input order.
        self.assertEqual([s.handle for s in result], ["slow", "mid", "fast"])


if __name__ == "__main__":
    unittest.main()
