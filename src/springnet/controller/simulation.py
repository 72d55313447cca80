"""
Simulation Hand-off (Threading)
===============================
Feeds the generated data file to an external simulation engine and collects
the per-step buffers it returns.

Why is this file needed?
------------------------
1. One-Way Flow: The engine only ever receives the serialized text. Frames
   coming back are for display; nothing here writes into the graph.
2. Ownership: Engines typically hand out views into their own memory that are
   only valid until the next step. SimulationFrame copies them into owned,
   read-only numpy arrays before anything keeps them.
3. Responsiveness: SimulationWorker steps the engine on a QThread and reports
   frames through Qt Signals, so the editor keeps reacting to input.

Classes:
    SimulationEngine: Protocol the external engine has to satisfy.
    SimulationFrame: Owned copy of one step's buffers.
    SimulationRunner: Steps an engine and keeps a bounded frame history.
    SimulationWorker: Runs a SimulationRunner in a background thread.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
from typing import Deque, Protocol, Tuple, TYPE_CHECKING

import numpy as np
from PySide6.QtCore import QThread, Signal

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class SimulationEngine(Protocol):
    def load_topology(self, text: str) -> None: ...
    def step(self, n_steps: int) -> None: ...
    def positions(self) -> npt.ArrayLike: ...
    def bond_endpoints(self) -> Tuple[npt.ArrayLike, npt.ArrayLike]: ...
    def box(self) -> Tuple[npt.ArrayLike, npt.ArrayLike]: ...


def _owned(buffer: npt.ArrayLike, shape: Tuple[int, ...]) -> npt.NDArray[np.float64]:
    """Copy ``buffer`` into a new read-only float array of the given shape."""
    array = np.array(buffer, dtype=np.float64, copy=True).reshape(shape)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class SimulationFrame:
    """
    One simulation step, detached from the engine's memory.

    Attributes:
        positions: (N, 3) atom positions.
        bond_segments: (M, 6) bond endpoints packed as (x1, y1, z1, x2, y2, z2).
        basis: (3, 3) box basis vectors (rows).
        origin: (3,) box origin.
    """
    positions: npt.NDArray[np.float64]
    bond_segments: npt.NDArray[np.float64]
    basis: npt.NDArray[np.float64]
    origin: npt.NDArray[np.float64]

    @property
    def atom_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def bond_count(self) -> int:
        return int(self.bond_segments.shape[0])

    @staticmethod
    def from_buffers(
        positions: npt.ArrayLike,
        bond_p1: npt.ArrayLike,
        bond_p2: npt.ArrayLike,
        basis: npt.ArrayLike,
        origin: npt.ArrayLike,
    ) -> SimulationFrame:
        """
        Build a frame from borrowed engine buffers.
        Flat position buffers are read as consecutive (x, y, z) triples.
        """
        pos = _owned(positions, (-1, 3))
        p1 = np.asarray(bond_p1, dtype=np.float64).reshape(-1, 3)
        p2 = np.asarray(bond_p2, dtype=np.float64).reshape(-1, 3)
        n = min(len(p1), len(p2))
        # hstack allocates, so the packed segments never alias the engine buffers
        segments = np.hstack((p1[:n], p2[:n]))
        segments.setflags(write=False)
        return SimulationFrame(
            positions=pos,
            bond_segments=segments,
            basis=_owned(basis, (3, 3)),
            origin=_owned(origin, (3,)),
        )


class SimulationRunner:
    """Steps an engine and keeps the most recent frames for scrubbing."""

    def __init__(self, engine: SimulationEngine, steps_per_frame: int = 10, max_frames: int = 1000) -> None:
        if steps_per_frame < 1:
            raise ValueError("steps_per_frame must be at least 1.")
        self.engine = engine
        self.steps_per_frame = steps_per_frame
        self.frames: Deque[SimulationFrame] = deque(maxlen=max_frames)
        self.started = False

    def start(self, topology: str) -> None:
        """Hand the generated data file to the engine. The text is passed unmodified."""
        logger.info(f"Loading topology into simulation engine ({len(topology)} characters).")
        self.reset()
        self.engine.load_topology(topology)
        self.started = True

    def next_frame(self) -> SimulationFrame:
        if not self.started:
            raise RuntimeError("Simulation has not been started.")
        self.engine.step(self.steps_per_frame)
        p1, p2 = self.engine.bond_endpoints()
        basis, origin = self.engine.box()
        frame = SimulationFrame.from_buffers(self.engine.positions(), p1, p2, basis, origin)
        self.frames.append(frame)
        return frame

    def reset(self) -> None:
        self.frames.clear()
        self.started = False


class SimulationWorker(QThread):
    # Signals to update the UI from the background
    frame_ready = Signal(object)
    error_occurred = Signal(str)

    def __init__(self, runner: SimulationRunner, topology: str, frame_interval_ms: int = 16) -> None:
        super().__init__()
        self.runner = runner
        self.topology = topology
        self.frame_interval_ms = frame_interval_ms
        self.is_running = True

    def run(self) -> None:
        try:
            logger.info("Starting simulation in background thread...")
            self.runner.start(self.topology)
            while self.is_running:
                self.frame_ready.emit(self.runner.next_frame())
                self.msleep(self.frame_interval_ms)
            logger.info("Simulation stopped.")

        except Exception as e:
            logger.error(f"Error in SimulationWorker: {e}")
            self.error_occurred.emit(str(e))

    def stop(self) -> None:
        self.is_running = False
