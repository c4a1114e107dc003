import unittest

from activity_smoother import ActivitySmoother
from motion_sampler import ActivityState


class TestActivitySmoother(unittest.TestCase):
    def test_single_step(self):
        state = ActivityState(target_activity=10.0, current_activity=0.0)
        smoother = ActivitySmoother(state, 0.05)
        self.assertAlmostEqual(smoother.step(), 0.5)
        self.assertAlmostEqual(state.current_activity, 0.5)

    def test_converges_geometrically(self):
        state = ActivityState(target_activity=10.0)
        smoother = ActivitySmoother(state, 0.05)
        for _ in range(60):
            smoother.step()
        # one second at 60 Hz: 1 - 0.95**60 ~ 0.954
        self.assertAlmostEqual(state.current_activity, 10.0 * (1 - 0.95 ** 60), places=9)
        self.assertLess(state.current_activity, 10.0)

    def test_stays_between_old_value_and_target(self):
        state = ActivityState(target_activity=2.0, current_activity=8.0)
        smoother = ActivitySmoother(state, 0.05)
        previous = state.current_activity
        for _ in range(200):
            value = smoother.step()
            self.assertLessEqual(value, previous)
            self.assertGreaterEqual(value, 2.0)
            previous = value

    def test_target_zero_decays_towards_zero(self):
        state = ActivityState(target_activity=0.0, current_activity=5.0)
        smoother = ActivitySmoother(state)
        for _ in range(600):
            smoother.step()
        self.assertLess(state.current_activity, 1e-9)
        self.assertGreaterEqual(state.current_activity, 0.0)

    def test_does_not_touch_target(self):
        state = ActivityState(target_activity=3.0)
        ActivitySmoother(state).step()
        self.assertEqual(state.target_activity, 3.0)


if __name__ == "__main__":
    unittest.main()
