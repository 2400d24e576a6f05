"""Stateless control laws.

These are the building blocks the stateful :class:`pid_loop.controller.Controller`
is derived from. They are handy on their own when the caller already measures
the rate of change of the process (e.g. a gyro rate next to an attitude angle)
and has no need for integral action.
"""
from __future__ import annotations


def error(target: float, actual: float) -> float:
    return target - actual


def proportional(kp: float, target: float, actual: float) -> float:
    """P law: ``kp * (target - actual)``."""
    return kp * error(target, actual)


def proportional_derivative(kp: float, kd: float, target: float, target_dot: float,
                            actual: float, actual_dot: float) -> float:
    """PD law using directly measured rates.

    :param target_dot: Desired rate of change of the process value.
    :param actual_dot: Measured rate of change of the process value.
    """
    p = proportional(kp, target, actual)
    return p + kd * (target_dot - actual_dot)


def damping_gains(damping_ratio: float, time_constant: float) -> tuple:
    """Derive (kp, ki, kd) for a second-order response.

    Recommended for ``0.7 <= damping_ratio <= 1.0`` and ``time_constant > 0``.
    Values outside that range still give numbers, they just do not describe a
    sensible response.
    """
    kp = (1.0 + 2.0 * damping_ratio) / time_constant ** 2
    ki = 1.0 / time_constant ** 3
    kd = (1.0 + 2.0 * time_constant ** 2) / time_constant
    return kp, ki, kd
