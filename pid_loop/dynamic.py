from __future__ import annotations
from dataclasses import dataclass
import numpy as np
import matplotlib.pyplot as plt

from . import config
from .controller import Controller


class Plant:
    """Discrete-time mass with linear drag, pushed by the actuator."""
    def __init__(self, mass: float = config.SIM_MASS, drag: float = config.SIM_DRAG,
                 actuator_gain: float = config.SIM_ACTUATOR_GAIN, dt: float = config.SIM_DT):

        self.mass = mass
        self.drag = drag
        self.actuator_gain = actuator_gain

        self.dt = dt # Time step for discrete time simulation

        self.position = 0.0
        self.velocity = 0.0

    def transition(self, action: float, disturbance: float):
        self.position += self.velocity * self.dt

        force = -self.drag * self.velocity + self.actuator_gain * (action + disturbance)
        acc = force / self.mass
        self.velocity += acc * self.dt

    def get_output(self) -> float:
        return self.position

    def reset_state(self):
        self.position = 0.0
        self.velocity = 0.0


@dataclass
class Trajectory:
    time: np.ndarray
    measurement: np.ndarray
    reference: np.ndarray
    action: np.ndarray

    def plot(self, show: bool = True):
        fig, (ax_y, ax_u) = plt.subplots(2, 1, sharex=True)
        ax_y.plot(self.time, self.measurement, label='Measurement')
        ax_y.plot(self.time, self.reference, 'r', linestyle='--', label='Reference')
        ax_y.legend(loc='upper right')
        ax_u.plot(self.time, self.action, 'k', label='Action')
        ax_u.legend(loc='upper right')
        if show:
            plt.show()
        return fig


class ClosedLoop:
    def __init__(self, plant: Plant, controller: Controller):
        self.plant = plant
        self.controller = controller

    def simulate(self, reference: np.ndarray, disturbances: np.ndarray) -> Trajectory:

        T = len(reference)
        if len(disturbances) < T:
            raise ValueError("Disturbances must be at least as long as the reference")

        measurements = np.zeros(T)
        actions = np.zeros(T)
        self.plant.reset_state()
        self.controller.reset()

        action = 0.0
        for t in range(T):
            measurements[t] = self.plant.get_output()
            # gated controllers see simulated time, not the wall clock
            output = self.controller.evaluate(measurements[t], reference[t], now=t * self.plant.dt)
            if output is not None:
                action = output
            # pending: hold the previous action

            actions[t] = action
            self.plant.transition(actions[t], disturbances[t])

        time = np.arange(T) * self.plant.dt
        return Trajectory(time, measurements, np.asarray(reference, dtype=float), actions)

    def simulate_with_random_disturbances(self, reference: np.ndarray, variance: float = 0.5,
                                          seed: int | None = None) -> Trajectory:
        rng = np.random.default_rng(seed)
        disturbances = rng.normal(0, variance, len(reference))
        return self.simulate(reference, disturbances)


def sweep(controller: Controller, measurements: np.ndarray, setpoint: float = 0.0) -> np.ndarray:
    """Feed ``measurements`` one per tick and collect the outputs.

    Pending ticks repeat the previous output (0 before the first one).
    """
    outputs = np.zeros(len(measurements))
    last = 0.0
    for i, measurement in enumerate(measurements):
        output = controller.evaluate(measurement, setpoint, now=i * controller.sample_period)
        if output is not None:
            last = output
        outputs[i] = last
    return outputs


def plot_sweep(controller: Controller, measurements: np.ndarray, setpoint: float = 0.0,
               show: bool = True):
    outputs = sweep(controller, measurements, setpoint)
    kp, ki, kd = controller.tunings
    fig, ax = plt.subplots()
    ax.plot(measurements, measurements, 'b', label='Input')
    ax.plot(measurements, outputs, 'r', label='Output')
    ax.set_title(f"kp={kp}, ki={ki}, kd={kd}")
    ax.legend(loc='upper left')
    if show:
        plt.show()
    return fig
