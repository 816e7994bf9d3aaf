"""Staged vehicle model: engines, tanks and staging.

A vehicle is a stack of stages. Stage 0 is the bottom of the stack and is
the first to burn; the last stage is the payload. Each ``stage()``
command either ignites the current stage (when its engines are not yet
running) or jettisons it and ignites the one above.

Example:
    >>> vehicle = Vehicle.single_stage(
    ...     dry_mass=1500.0, propellant_mass=2000.0,
    ...     thrust=60000.0, isp=345.0,
    ... )
    >>> vehicle.available_thrust
    60000.0
"""

from dataclasses import dataclass, field

import numpy as np
from beartype import beartype

from autopilot.config import G0
from autopilot.interfaces import EngineStatus


@beartype
@dataclass
class Engine:
    """A single engine.

    Attributes:
        max_thrust: Thrust at full throttle [N]
        isp: Specific impulse [s]
        ignited: Engine has been activated
        flameout: Engine has run out of propellant
    """
    max_thrust: float
    isp: float
    ignited: bool = False
    flameout: bool = False

    @property
    def available_thrust(self) -> float:
        if self.ignited and not self.flameout:
            return self.max_thrust
        return 0.0

    def status(self) -> EngineStatus:
        return EngineStatus(
            ignited=self.ignited,
            flameout=self.flameout,
            isp=self.isp,
            available_thrust=self.available_thrust,
        )


@beartype
@dataclass
class Stage:
    """Engines plus the tank that feeds them.

    Attributes:
        dry_mass: Structure and engine mass [kg]
        propellant_mass: Remaining propellant [kg]
        engines: Engines fed by this stage's tank
    """
    dry_mass: float
    propellant_mass: float
    engines: list[Engine] = field(default_factory=list)

    @property
    def mass(self) -> float:
        return self.dry_mass + self.propellant_mass

    @property
    def ignited(self) -> bool:
        return any(e.ignited for e in self.engines)

    @property
    def available_thrust(self) -> float:
        return sum(e.available_thrust for e in self.engines)

    def ignite(self) -> None:
        for engine in self.engines:
            engine.ignited = True
            engine.flameout = self.propellant_mass <= 0.0

    def mass_flow(self, throttle: float) -> float:
        """Propellant consumption at ``throttle`` [kg/s]."""
        return sum(
            throttle * e.available_thrust / (e.isp * G0)
            for e in self.engines
            if e.available_thrust > 0.0
        )

    def consume(self, mass: float) -> None:
        """Drain propellant, flaming out every engine when the tank is dry."""
        self.propellant_mass = max(self.propellant_mass - mass, 0.0)
        if self.propellant_mass <= 0.0:
            for engine in self.engines:
                engine.flameout = True


@beartype
@dataclass
class Vehicle:
    """Stack of stages, bottom first.

    Attributes:
        stages: Stages in firing order
        current: Index of the lowest stage still attached
    """
    stages: list[Stage]
    current: int = 0

    def __post_init__(self) -> None:
        if not self.stages:
            raise ValueError("Vehicle needs at least one stage")

    @classmethod
    def single_stage(
        cls,
        dry_mass: float,
        propellant_mass: float,
        thrust: float,
        isp: float,
        ignited: bool = True,
    ) -> "Vehicle":
        """One stage with one engine, running by default."""
        stage = Stage(
            dry_mass=dry_mass,
            propellant_mass=propellant_mass,
            engines=[Engine(max_thrust=thrust, isp=isp)],
        )
        if ignited:
            stage.ignite()
        return cls(stages=[stage])

    @property
    def attached(self) -> list[Stage]:
        return self.stages[self.current:]

    @property
    def active_stage(self) -> Stage:
        return self.stages[self.current]

    @property
    def mass(self) -> float:
        return float(sum(s.mass for s in self.attached))

    @property
    def available_thrust(self) -> float:
        return float(sum(s.available_thrust for s in self.attached))

    @property
    def engines(self) -> list[EngineStatus]:
        return [e.status() for s in self.attached for e in s.engines]

    @property
    def stages_remaining(self) -> int:
        """Number of ``stage()`` commands that still do something."""
        remaining = len(self.stages) - 1 - self.current
        if not self.active_stage.ignited and self.active_stage.engines:
            remaining += 1
        return remaining

    def stage(self) -> None:
        """Ignite the current stage, or jettison it and ignite the next one."""
        if self.active_stage.engines and not self.active_stage.ignited:
            self.active_stage.ignite()
            return
        if self.current + 1 >= len(self.stages):
            return
        self.current += 1
        self.active_stage.ignite()

    def burn(self, throttle: float, dt: float) -> float:
        """Consume propellant for ``dt`` seconds at ``throttle``.

        Returns:
            Propellant mass burned [kg]
        """
        stage = self.active_stage
        burned = float(np.clip(stage.mass_flow(throttle) * dt, 0.0, stage.propellant_mass))
        stage.consume(burned)
        return burned
