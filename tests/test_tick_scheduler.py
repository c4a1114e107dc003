import asyncio
import unittest

from tick_scheduler import TickScheduler


class TestTickScheduler(unittest.IsolatedAsyncioTestCase):
    async def test_ticks_until_stopped(self):
        calls = []
        scheduler = TickScheduler(lambda: calls.append(1), hz=200)
        scheduler.start()
        self.assertTrue(scheduler.running)

        await asyncio.sleep(0.1)
        await scheduler.stop()

        self.assertFalse(scheduler.running)
        self.assertGreaterEqual(len(calls), 5)
        self.assertEqual(scheduler.ticks, len(calls))

        stopped_at = len(calls)
        await asyncio.sleep(0.03)
        self.assertEqual(len(calls), stopped_at)

    async def test_failing_callback_keeps_running(self):
        def explode():
            raise RuntimeError("tick failed")

        scheduler = TickScheduler(explode, hz=200)
        scheduler.start()
        await asyncio.sleep(0.05)
        self.assertTrue(scheduler.running)
        await scheduler.stop()
        self.assertGreater(scheduler.errors, 1)
        self.assertEqual(scheduler.errors, scheduler.ticks)

    async def test_start_twice_is_single_task(self):
        calls = []
        scheduler = TickScheduler(lambda: calls.append(1), hz=50)
        scheduler.start()
        scheduler.start()
        await asyncio.sleep(0)
        await scheduler.stop()
        self.assertEqual(len(calls), 1)

    async def test_stop_without_start(self):
        await TickScheduler(lambda: None).stop()

    def test_rejects_non_positive_rate(self):
        with self.assertRaises(ValueError):
            TickScheduler(lambda: None, hz=0)


if __name__ == "__main__":
    unittest.main()
