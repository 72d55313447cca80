# Third Party
import numpy as np
import pytest

# Local
from springnet.controller.simulation import SimulationFrame, SimulationRunner
from springnet.model.codec import generate


class FakeEngine:
    """Moves every atom +1 in x per step and reuses its buffers, like a real engine would."""

    def __init__(self):
        self.topology = None
        self.steps = 0
        self._positions = np.zeros((3, 3))
        self._p1 = np.zeros((2, 3))
        self._p2 = np.ones((2, 3))

    def load_topology(self, text):
        self.topology = text

    def step(self, n_steps):
        self.steps += n_steps
        self._positions[:, 0] += n_steps
        self._p1[:, 0] = self._positions[0, 0]

    def positions(self):
        return self._positions.ravel()

    def bond_endpoints(self):
        return self._p1, self._p2

    def box(self):
        return np.eye(3), np.zeros(3)


def test_frame_owns_its_buffers():
    positions = np.arange(6, dtype=float)
    frame = SimulationFrame.from_buffers(positions, np.zeros(3), np.ones(3), np.eye(3), np.zeros(3))
    positions[:] = -1.0
    assert frame.positions[1].tolist() == [3.0, 4.0, 5.0]
    assert frame.bond_segments.shape == (1, 6)
    assert frame.atom_count == 2 and frame.bond_count == 1
    with pytest.raises(ValueError):
        frame.positions[0, 0] = 1.0


def test_runner_passes_text_unmodified(triangle):
    engine = FakeEngine()
    runner = SimulationRunner(engine, steps_per_frame=5)
    text = generate(triangle)
    runner.start(text)
    assert engine.topology == text


def test_runner_frames_are_independent():
    engine = FakeEngine()
    runner = SimulationRunner(engine, steps_per_frame=2, max_frames=2)
    runner.start("topology")
    first = runner.next_frame()
    runner.next_frame()
    runner.next_frame()
    assert engine.steps == 6
    assert first.positions[0, 0] == 2.0
    assert len(runner.frames) == 2
    assert runner.frames[0].positions[0, 0] == 4.0


def test_runner_requires_start():
    runner = SimulationRunner(FakeEngine())
    with pytest.raises(RuntimeError):
        runner.next_frame()


def test_runner_rejects_bad_step_count():
    with pytest.raises(ValueError):
        SimulationRunner(FakeEngine(), steps_per_frame=0)
