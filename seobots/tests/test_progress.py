import asyncio
import unittest

from seobots.models import BotState, BotStatus
from seobots.progress import BotTracker


def make_bots(count: int = 3):
    return [BotState(name=f"Bot {i}", description="testing") for i in range(count)]


class BotTrackerTests(unittest.TestCase):
    def test_lifecycle_publishes_full_snapshots(self):
        snapshots = []
        tracker = BotTracker(make_bots(), snapshots.append)

        async def run():
            bot = tracker.handle(1)
            await bot.start()
            await bot.update(progress=40)
            await bot.complete(findings=5)

        asyncio.run(run())

        self.assertEqual(len(snapshots), 3)
        self.assertTrue(all(len(snapshot) == 3 for snapshot in snapshots))
        self.assertEqual(snapshots[0][1].status, BotStatus.RUNNING)
        self.assertEqual(snapshots[1][1].progress, 40)
        self.assertEqual(snapshots[2][1].status, BotStatus.COMPLETED)
        self.assertEqual(snapshots[2][1].findings, 5)
        # Other slots untouched
        self.assertEqual(snapshots[2][0].status, BotStatus.IDLE)

    def test_updates_after_terminal_state_are_ignored(self):
        snapshots = []
        tracker = BotTracker(make_bots(), snapshots.append)

        async def run():
            bot = tracker.handle(0)
            await bot.fail()
            await bot.update(progress=80)
            await bot.complete(findings=9)

        asyncio.run(run())

        self.assertEqual(len(snapshots), 1)
        state = tracker.bots[0]
        self.assertEqual(state.status, BotStatus.ERROR)
        self.assertEqual(state.progress, 0)
        self.assertEqual(state.findings, 1)

    def test_snapshots_are_copies(self):
        tracker = BotTracker(make_bots())
        snapshot = tracker.snapshot()
        snapshot[0].progress = 99

        self.assertEqual(tracker.bots[0].progress, 0)

    def test_tracker_does_not_alias_input(self):
        bots = make_bots()
        tracker = BotTracker(bots)
        asyncio.run(tracker.handle(2).start())

        self.assertEqual(bots[2].status, BotStatus.IDLE)
        self.assertEqual(tracker.handle(2).state.status, BotStatus.RUNNING)

    def test_async_sink_is_awaited(self):
        received = []

        async def sink(bots):
            await asyncio.sleep(0)
            received.append([bot.status for bot in bots])

        tracker = BotTracker(make_bots(2), sink)
        asyncio.run(tracker.handle(0).start())

        self.assertEqual(received, [[BotStatus.RUNNING, BotStatus.IDLE]])

    def test_failing_sink_does_not_break_updates(self):
        def sink(bots):
            raise RuntimeError("consumer went away")

        tracker = BotTracker(make_bots(), sink)

        with self.assertLogs("seobots.progress", level="WARNING"):
            asyncio.run(tracker.handle(0).complete(findings=2))

        self.assertEqual(tracker.bots[0].status, BotStatus.COMPLETED)


if __name__ == "__main__":
    unittest.main()
