"""Canonical PID controller.

One :class:`Controller` covers every configuration the control loops need:
proportional-on-error or proportional-on-measurement, direct or reverse
acting, and free-running or time-gated evaluation. The host loop calls
:meth:`Controller.evaluate` once per tick and applies the result to the
actuator.

Arithmetic is done in 32-bit floats (``numpy.float32``), matching the
precision of the embedded targets the gains are tuned on.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np

from . import config
from .terms import damping_gains

logger = logging.getLogger(__name__)

_f32 = np.float32


class ProportionalMode(Enum):
    ON_ERROR = "on_error"
    ON_MEASUREMENT = "on_measurement"


class Direction(Enum):
    """Acting direction. The value is the sign applied to all three gains."""
    DIRECT = 1
    REVERSE = -1


def _clamp(value, lower, upper):
    # NaN passes straight through: both comparisons are False.
    if value > upper:
        return upper
    if value < lower:
        return lower
    return value


def _gains_valid(kp: float, ki: float, kd: float) -> bool:
    return kp >= 0 and ki >= 0 and kd >= 0


class Controller:
    """Stateful PID controller with clamped integrator.

    The integrator is clamped to the output limits every tick, so it can never
    wind up beyond what the actuator can deliver. The derivative term (and the
    proportional term in ``ON_MEASUREMENT`` mode) is computed from the change
    in measurement rather than the change in error, so setpoint steps do not
    kick the output.

    Not thread safe: give each control loop its own instance or guard it with
    a lock.
    """

    def __init__(
        self,
        kp: float,
        ki: float,
        kd: float,
        setpoint: float = 0.0,
        sample_period: float = config.DEFAULT_SAMPLE_PERIOD,
        output_limits: Tuple[float, float] = config.DEFAULT_OUTPUT_LIMITS,
        proportional_mode: ProportionalMode = ProportionalMode.ON_ERROR,
        direction: Direction = Direction.DIRECT,
        gated: bool = False,
        time_fn: Optional[Callable[[], float]] = None,
    ):
        """
        :param kp, ki, kd:        Raw gains, all >= 0. ``ki`` is per second and
                                  ``kd`` is in seconds; both are rescaled by
                                  ``sample_period`` when stored.
        :param setpoint:          Target used when evaluate() gets no setpoint.
        :param sample_period:     Seconds between ticks, > 0.
        :param output_limits:     (min, max) clamp for integrator and output.
        :param proportional_mode: ON_ERROR or ON_MEASUREMENT.
        :param direction:         DIRECT or REVERSE acting.
        :param gated:             Skip evaluations until sample_period has elapsed.
        :param time_fn:           Clock for gating, defaults to time.monotonic.
        """
        if not _gains_valid(kp, ki, kd):
            raise ValueError(f"gains must be non-negative, got kp={kp}, ki={ki}, kd={kd}")
        if not sample_period > 0:
            raise ValueError(f"sample_period must be positive, got {sample_period}")
        lower, upper = output_limits
        if not lower <= upper:
            raise ValueError(f"lower limit {lower} is above upper limit {upper}")

        self.setpoint = setpoint
        self.gated = gated
        self.time_fn = time_fn if time_fn is not None else time.monotonic

        self._direction = direction
        self._min = _f32(lower)
        self._max = _f32(upper)

        self._integrator = _f32(0.0)
        self._last_input = _f32(0.0)
        self._last_time = None
        self._components = (0.0, 0.0, 0.0)

        self._proportional_mode = proportional_mode
        self._sample_period = float(sample_period)
        self.tune(kp, ki, kd, proportional_mode, sample_period)

    @classmethod
    def from_damping(cls, damping_ratio: float, time_constant: float, **kwargs) -> Controller:
        """Build a controller from a damping ratio and time constant.

        ``kp = (1 + 2*zeta) / tau**2``, ``ki = 1 / tau**3`` and
        ``kd = (1 + 2*tau**2) / tau``. Use ``0.7 <= damping_ratio <= 1.0``;
        nothing outside that range is rejected.
        """
        kp, ki, kd = damping_gains(damping_ratio, time_constant)
        return cls(kp, ki, kd, **kwargs)

    def __repr__(self):
        kp, ki, kd = self.tunings
        return (
            f"{self.__class__.__name__}(kp={kp!r}, ki={ki!r}, kd={kd!r}, "
            f"setpoint={self.setpoint!r}, sample_period={self._sample_period!r}, "
            f"output_limits={self.output_limits!r}, "
            f"proportional_mode={self._proportional_mode}, direction={self._direction}, "
            f"gated={self.gated!r})"
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def tune(
        self,
        kp: float,
        ki: float,
        kd: float,
        proportional_mode: Optional[ProportionalMode] = None,
        sample_period: Optional[float] = None,
    ) -> bool:
        """Change gains online without resetting the integrator.

        Rejected requests (a negative gain or a non-positive period) leave the
        controller exactly as it was and return False. A running loop keeps
        going on the old tuning rather than failing.
        """
        if sample_period is None:
            sample_period = self._sample_period
        if proportional_mode is None:
            proportional_mode = self._proportional_mode

        if not _gains_valid(kp, ki, kd):
            logger.warning("Rejected tuning with negative gain: kp=%s ki=%s kd=%s", kp, ki, kd)
            return False
        if not sample_period > 0:
            logger.warning("Rejected tuning with non-positive sample period %s", sample_period)
            return False

        self._tunings = (float(kp), float(ki), float(kd))
        self._sample_period = float(sample_period)
        self._proportional_mode = proportional_mode
        self._kp = _f32(kp)
        self._ki = _f32(ki * sample_period)
        self._kd = _f32(kd / sample_period)
        logger.debug("Tuned %r", self)
        return True

    def set_output_limits(self, lower: float, upper: float) -> bool:
        """Set the clamp interval and pull the integrator back inside it.

        Returns False and changes nothing when ``lower > upper`` or a limit is NaN.
        """
        if not lower <= upper:
            logger.warning("Rejected output limits: lower %s is above upper %s", lower, upper)
            return False
        self._min = _f32(lower)
        self._max = _f32(upper)
        self._integrator = _clamp(self._integrator, self._min, self._max)
        return True

    def reverse(self) -> None:
        """Flip between direct and reverse acting."""
        if self._direction is Direction.DIRECT:
            self._direction = Direction.REVERSE
        else:
            self._direction = Direction.DIRECT

    def reset(self, integrator: float = 0.0) -> None:
        """Clear the controller's memory.

        :param integrator: Starting integrator value (clamped to the limits),
                           e.g. the actuator's current command when taking
                           over from manual control.
        """
        self._integrator = _clamp(_f32(integrator), self._min, self._max)
        self._last_input = _f32(0.0)
        self._last_time = None
        self._components = (0.0, 0.0, 0.0)

    # ------------------------------------------------------------------
    # Per-tick evaluation
    # ------------------------------------------------------------------
    def evaluate(self, measurement: float, setpoint: Optional[float] = None,
                 now: Optional[float] = None) -> Optional[float]:
        """Compute the control output for this tick.

        :param measurement: Current process value.
        :param setpoint:    Target for this tick, defaults to ``self.setpoint``.
        :param now:         Monotonic time in seconds, only used when gated.
                            Defaults to ``time_fn()``.
        :return:            The clamped output, or None when the controller is
                            gated and a full sample period has not elapsed yet
                            (keep applying the previous output).
        """
        if self.gated:
            if now is None:
                now = self.time_fn()
            # A clock that went backwards gives a negative elapsed time: not due.
            # Ticks stamped i * period apart must still count as due.
            due_after = self._sample_period * (1.0 - config.GATE_TOLERANCE)
            if self._last_time is not None and now - self._last_time < due_after:
                return None

        if setpoint is None:
            setpoint = self.setpoint

        sign = _f32(self._direction.value)
        kp = sign * self._kp
        ki = sign * self._ki
        kd = sign * self._kd

        measurement = _f32(measurement)
        error = _f32(setpoint) - measurement
        delta = measurement - self._last_input

        # Anti-windup: the integrator never leaves the actuator range.
        self._integrator = _clamp(self._integrator + ki * error, self._min, self._max)

        if self._proportional_mode is ProportionalMode.ON_MEASUREMENT:
            self._integrator = self._integrator - kp * delta
            p = _f32(0.0)
        else:
            p = kp * error

        d = -kd * delta

        output = _clamp(p + self._integrator + d, self._min, self._max)

        self._last_input = measurement
        if self.gated:
            self._last_time = now
        self._components = (float(p), float(self._integrator), float(d))
        return float(output)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def kp(self) -> float:
        """Proportional gain as used per tick (sign includes the direction)."""
        return float(self._direction.value * self._kp)

    @property
    def ki(self) -> float:
        """Integral gain as stored: raw ki multiplied by sample_period, signed."""
        return float(self._direction.value * self._ki)

    @property
    def kd(self) -> float:
        """Derivative gain as stored: raw kd divided by sample_period, signed."""
        return float(self._direction.value * self._kd)

    @property
    def tunings(self) -> Tuple[float, float, float]:
        """The raw, unscaled, unsigned gains last accepted by tune()."""
        return self._tunings

    @property
    def proportional_mode(self) -> ProportionalMode:
        return self._proportional_mode

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def sample_period(self) -> float:
        return self._sample_period

    @property
    def min_output(self) -> float:
        return float(self._min)

    @property
    def max_output(self) -> float:
        return float(self._max)

    @property
    def output_limits(self) -> Tuple[float, float]:
        return float(self._min), float(self._max)

    @property
    def integrator(self) -> float:
        return float(self._integrator)

    @property
    def last_input(self) -> float:
        return float(self._last_input)

    @property
    def last_time(self) -> Optional[float]:
        """Time of the last accepted gated tick, None before the first one."""
        return self._last_time

    @property
    def components(self) -> Tuple[float, float, float]:
        """The (p, integrator, d) terms from the last evaluation."""
        return self._components
