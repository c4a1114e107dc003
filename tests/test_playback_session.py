import asyncio
import unittest

from audio_engine import DryRunAudioEngine
from playback_session import PlaybackSession, SessionState


class BrokenEngine(DryRunAudioEngine):
    async def load(self, resource, loop=True):
        self.load_calls += 1
        raise RuntimeError("decoder exploded")


class TestPlaybackSession(unittest.IsolatedAsyncioTestCase):
    async def test_load_start_stop(self):
        engine = DryRunAudioEngine()
        session = PlaybackSession(engine, "track.wav")

        self.assertTrue(await session.load())
        self.assertIs(session.state, SessionState.READY)
        self.assertEqual(engine.resource, "track.wav")

        self.assertTrue(session.start())
        self.assertTrue(session.playing)
        self.assertTrue(engine.playing)

        self.assertTrue(session.stop())
        self.assertIs(session.state, SessionState.READY)
        self.assertFalse(engine.playing)

    async def test_start_requires_ready(self):
        session = PlaybackSession(DryRunAudioEngine(), "track.wav")
        self.assertFalse(session.start())
        self.assertFalse(session.stop())
        self.assertIs(session.state, SessionState.UNINITIALIZED)

    async def test_timeout_fails(self):
        engine = DryRunAudioEngine(load_delay_s=5.0)
        session = PlaybackSession(engine, "slow.wav", load_timeout_s=0.05)

        self.assertFalse(await session.load())
        self.assertIs(session.state, SessionState.FAILED)
        self.assertIn("timed out", session.error)

    async def test_engine_failure_is_terminal(self):
        engine = DryRunAudioEngine(fail_load=True)
        session = PlaybackSession(engine, "missing.wav")

        self.assertFalse(await session.load())
        self.assertIs(session.state, SessionState.FAILED)
        self.assertIsNotNone(session.error)

        # No retry
        self.assertFalse(await session.load())
        self.assertEqual(engine.load_calls, 1)
        self.assertFalse(session.start())

    async def test_engine_exception_fails(self):
        session = PlaybackSession(BrokenEngine(), "track.wav")
        self.assertFalse(await session.load())
        self.assertIs(session.state, SessionState.FAILED)
        self.assertIn("decoder exploded", session.error)

    async def test_no_concurrent_loads(self):
        engine = DryRunAudioEngine(load_delay_s=0.05)
        session = PlaybackSession(engine, "track.wav")

        first = asyncio.create_task(session.load())
        await asyncio.sleep(0)
        self.assertIs(session.state, SessionState.LOADING)

        self.assertFalse(await session.load())
        self.assertTrue(await first)
        self.assertEqual(engine.load_calls, 1)
        self.assertEqual(session.load_attempts, 1)

    async def test_dispose_during_load(self):
        engine = DryRunAudioEngine(load_delay_s=0.05)
        session = PlaybackSession(engine, "track.wav")

        pending = asyncio.create_task(session.load())
        await asyncio.sleep(0)
        session.dispose()

        self.assertFalse(await pending)
        self.assertIs(session.state, SessionState.DISPOSED)
        self.assertEqual(engine.load_calls, 1)
        self.assertFalse(engine.loaded)

    async def test_dispose_stops_playback(self):
        engine = DryRunAudioEngine()
        session = PlaybackSession(engine, "track.wav")
        await session.load()
        session.start()

        session.dispose()
        session.dispose()

        self.assertIs(session.state, SessionState.DISPOSED)
        self.assertFalse(engine.playing)
        self.assertFalse(engine.loaded)
        self.assertFalse(session.start())


if __name__ == "__main__":
    unittest.main()
