import unittest

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from pid_loop.controller import Controller
from pid_loop.dynamic import ClosedLoop, Plant, sweep, plot_sweep


class PlantTests(unittest.TestCase):
    def test_transition_and_reset(self):
        plant = Plant(mass=2.0, drag=0.0, actuator_gain=1.0, dt=1.0)
        plant.transition(2.0, 0.0)
        self.assertEqual(plant.get_output(), 0.0)
        self.assertEqual(plant.velocity, 1.0)
        plant.transition(0.0, 0.0)
        self.assertEqual(plant.get_output(), 1.0)

        plant.reset_state()
        self.assertEqual((plant.position, plant.velocity), (0.0, 0.0))


class ClosedLoopTests(unittest.TestCase):
    def test_first_action_comes_from_controller(self):
        loop = ClosedLoop(Plant(), Controller(0.5, 0.0, 0.0))
        trajectory = loop.simulate(np.ones(10), np.zeros(10))

        self.assertEqual(trajectory.measurement.shape, (10,))
        self.assertEqual(trajectory.action.shape, (10,))
        self.assertAlmostEqual(trajectory.action[0], 0.5)
        self.assertEqual(trajectory.measurement[0], 0.0)

    def test_short_disturbances_raise(self):
        loop = ClosedLoop(Plant(), Controller(0.5, 0.0, 0.0))
        with self.assertRaises(ValueError):
            loop.simulate(np.ones(10), np.zeros(5))

    def test_pending_ticks_hold_previous_action(self):
        pid = Controller(0.5, 0.1, 0.2, sample_period=2.0, gated=True)
        trajectory = ClosedLoop(Plant(dt=1.0), pid).simulate(np.ones(6), np.zeros(6))
        self.assertEqual(trajectory.action[1], trajectory.action[0])
        self.assertEqual(trajectory.action[3], trajectory.action[2])

    def test_gated_loop_updates_every_tick_at_plant_rate(self):
        reference = np.ones(30)
        disturbances = np.zeros(30)
        gated = ClosedLoop(Plant(dt=0.1), Controller(0.5, 0.1, 0.2, sample_period=0.1, gated=True))
        free = ClosedLoop(Plant(dt=0.1), Controller(0.5, 0.1, 0.2, sample_period=0.1))
        np.testing.assert_array_equal(gated.simulate(reference, disturbances).action,
                                      free.simulate(reference, disturbances).action)

    def test_simulate_resets_controller(self):
        loop = ClosedLoop(Plant(), Controller(0.15, 0.01, 0.6, output_limits=(-1.0, 1.0)))
        first = loop.simulate_with_random_disturbances(np.ones(50), seed=3)
        second = loop.simulate_with_random_disturbances(np.ones(50), seed=3)
        np.testing.assert_array_equal(first.measurement, second.measurement)
        self.assertTrue(np.all(np.abs(first.action) <= 1.0))

    def test_plot(self):
        loop = ClosedLoop(Plant(), Controller(0.15, 0.0, 0.6))
        fig = loop.simulate(np.ones(20), np.zeros(20)).plot(show=False)
        self.assertEqual(len(fig.axes), 2)
        plt.close(fig)


class SweepTests(unittest.TestCase):
    def test_sweep(self):
        measurements = np.linspace(-1.0, 1.0, 51)
        outputs = sweep(Controller(0.1, 0.05, 0.0), measurements)
        self.assertEqual(len(outputs), 51)
        self.assertAlmostEqual(outputs[0], 0.15, places=6)

    def test_gated_sweep_matches_free_running(self):
        measurements = np.linspace(-1.0, 1.0, 20)
        gated = sweep(Controller(0.1, 0.05, 0.3, sample_period=0.1, gated=True), measurements)
        free = sweep(Controller(0.1, 0.05, 0.3, sample_period=0.1), measurements)
        np.testing.assert_array_equal(gated, free)

    def test_plot_sweep(self):
        fig = plot_sweep(Controller(0.1, 0.05, 0.0), np.linspace(-1.0, 1.0, 51), show=False)
        self.assertEqual(fig.axes[0].get_title(), "kp=0.1, ki=0.05, kd=0.0")
        plt.close(fig)


if __name__ == "__main__":
    unittest.main()
