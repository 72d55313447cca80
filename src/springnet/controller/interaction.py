"""
Canvas Interaction Engine
=========================
Turns pointer and keyboard input into selection changes and store commits.

Why is this file needed?
------------------------
1. State Machine: Idle, atom drag, group drag, marquee selection and inline
   editing are explicit states, so every input has one well-defined meaning.
2. History Hygiene: While a gesture is running, positions go into a pending
   map that the canvas draws from. Exactly one commit happens when the gesture
   ends; a cancelled gesture commits nothing.
3. Headless: It works in canvas pixels and plain Python types. The Qt canvas
   only forwards events, which keeps this class testable without a window.

Classes:
    InteractionState: The states of the machine.
    InteractionEngine: The machine itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from math import hypot
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from springnet.config import EditorConfig
from springnet.controller.inline_edit import (
    InlineEditor, ValidationError, format_coefficient, parse_coefficient
)
from springnet.controller.viewport import Viewport
from springnet.model.entities import Bond
from springnet.model.geometry_utils import rect_from_corners, snap_to_grid
from springnet.model.session import Clipboard, SessionContext
from springnet.model.store import GraphStore

logger = logging.getLogger(__name__)

Position = Tuple[float, float]


class InteractionState(StrEnum):
    IDLE = "idle"
    ATOM_DRAGGING = "atom_dragging"
    GROUP_DRAGGING = "group_dragging"
    MARQUEE_SELECTING = "marquee_selecting"
    INLINE_EDITING = "inline_editing"


GESTURE_STATES = (
    InteractionState.ATOM_DRAGGING,
    InteractionState.GROUP_DRAGGING,
    InteractionState.MARQUEE_SELECTING,
)


@dataclass
class _Press:
    """Everything remembered from the pointer-down that started a gesture."""
    canvas: Position
    point: Position
    atom_id: Optional[int]
    modifier: bool
    grab: Position = (0.0, 0.0)
    origins: Dict[int, Position] = field(default_factory=dict)
    moved: bool = False


class InteractionEngine:
    def __init__(
        self,
        store: GraphStore,
        session: Optional[SessionContext] = None,
        viewport: Optional[Viewport] = None,
        config: Optional[EditorConfig] = None,
    ) -> None:
        self.store = store
        self.session = session if session is not None else store.session
        self.config = config if config is not None else EditorConfig()

        if viewport is None:
            viewport = Viewport(
                world_scale=self.config.world_scale,
                hit_radius_px=self.config.hit_radius_px,
            )
            viewport.set_zoom_percent(self.session.zoom_percent)
        self.viewport = viewport

        self.snap_enabled: bool = self.config.snap_to_grid
        self.grid_size: float = self.config.grid_size

        self.state = InteractionState.IDLE
        self.editor: Optional[InlineEditor] = None
        self._selection: set[int] = set()
        self._press: Optional[_Press] = None
        self._pending: Dict[int, Position] = {}
        self._marquee: Optional[Tuple[float, float, float, float]] = None

        if self.session.selected is not None and self.session.selected in store.graph.atoms:
            self._selection = {self.session.selected}

    # ------------------------------------------------------------------------------
    # Read-only views for the canvas
    # ------------------------------------------------------------------------------
    @property
    def selection(self) -> FrozenSet[int]:
        """Selected atom ids that still exist in the graph."""
        atoms = self.store.graph.atoms
        return frozenset(i for i in self._selection if i in atoms)

    def display_positions(self) -> Dict[int, Position]:
        """Committed positions overlaid with the positions of a running drag."""
        positions = {a.id: (a.x, a.y) for a in self.store.graph.atoms.values()}
        for atom_id, pos in self._pending.items():
            if atom_id in positions:
                positions[atom_id] = pos
        return positions

    def marquee_rect(self) -> Optional[Tuple[float, float, float, float]]:
        """(x_min, x_max, y_min, y_max) of the marquee in graph units, while one is drawn."""
        if self._marquee is None:
            return None
        return rect_from_corners(*self._marquee)

    # ------------------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------------------
    def set_grid_snap(self, enabled: bool, size: Optional[float] = None) -> None:
        self.snap_enabled = enabled
        if size is not None and size > 0.0:
            self.grid_size = size

    def set_zoom_percent(self, percent: float) -> None:
        self.viewport.set_zoom_percent(percent)
        self.session.zoom_percent = self.viewport.zoom_percent

    def resize(self, width: float, height: float) -> None:
        self.viewport.resize(width, height)

    def set_selection(self, ids: Iterable[int]) -> None:
        atoms = self.store.graph.atoms
        self._set_selection(i for i in ids if i in atoms)

    # ------------------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------------------
    def atom_at(self, x: float, y: float) -> Optional[int]:
        """Top-most atom within the pick radius of graph point (x, y)."""
        radius = self.viewport.hit_radius
        positions = self.display_positions()
        for atom_id in reversed(list(positions)):
            ax, ay = positions[atom_id]
            if hypot(ax - x, ay - y) <= radius:
                return atom_id
        return None

    def bond_midpoint_at(self, x: float, y: float) -> Optional[Bond]:
        """Bond whose midpoint is nearest to (x, y), if within the pick radius."""
        positions = self.display_positions()
        best: Optional[Bond] = None
        best_distance = self.viewport.hit_radius
        for bond in self.store.graph.bonds.values():
            if bond.i not in positions or bond.j not in positions:
                continue
            mx, my = self._midpoint(positions, bond)
            d = hypot(mx - x, my - y)
            if d <= best_distance and (best is None or d < best_distance):
                best, best_distance = bond, d
        return best

    @staticmethod
    def _midpoint(positions: Dict[int, Position], bond: Bond) -> Position:
        (xi, yi), (xj, yj) = positions[bond.i], positions[bond.j]
        return (xi + xj) / 2.0, (yi + yj) / 2.0

    # ------------------------------------------------------------------------------
    # Pointer input (canvas pixels)
    # ------------------------------------------------------------------------------
    def pointer_down(self, px: float, py: float, modifier: bool = False) -> None:
        if self.state == InteractionState.INLINE_EDITING:
            self.commit_edit()
        elif self.state != InteractionState.IDLE:
            # A release we never saw; drop the stale gesture
            self._reset_gesture()

        x, y = self.viewport.to_graph(px, py)
        atom_id = self.atom_at(x, y)
        press = _Press(canvas=(px, py), point=(x, y), atom_id=atom_id, modifier=modifier)
        self._press = press

        if atom_id is None:
            self.state = InteractionState.MARQUEE_SELECTING
            self._marquee = (x, y, x, y)
            return

        positions = self.display_positions()
        ax, ay = positions[atom_id]
        press.grab = (x - ax, y - ay)

        selection = self.selection
        if atom_id in selection and len(selection) > 1:
            self.state = InteractionState.GROUP_DRAGGING
            press.origins = {i: positions[i] for i in selection}
        else:
            # With the modifier held, the selection change waits for the release (toggle)
            if not modifier:
                self._set_selection({atom_id})
            self.state = InteractionState.ATOM_DRAGGING
            press.origins = {atom_id: (ax, ay)}
        logger.debug(f"Pointer down on atom {atom_id}: {self.state}.")

    def pointer_move(self, px: float, py: float, primary_held: bool = True) -> None:
        press = self._press
        if self.state not in GESTURE_STATES or press is None or not primary_held:
            return

        if not press.moved:
            cx, cy = press.canvas
            if hypot(px - cx, py - cy) <= self.config.drag_epsilon_px:
                return
            press.moved = True
            if self.state == InteractionState.ATOM_DRAGGING and press.atom_id not in self.selection:
                self._set_selection({press.atom_id})

        x, y = self.viewport.to_graph(px, py)
        if self.state == InteractionState.MARQUEE_SELECTING:
            x0, y0 = press.point
            self._marquee = (x0, y0, x, y)
        elif self.state == InteractionState.ATOM_DRAGGING:
            gx, gy = press.grab
            self._pending = {press.atom_id: (self._snap(x - gx), self._snap(y - gy))}
        else:
            dx, dy = x - press.point[0], y - press.point[1]
            self._pending = {
                atom_id: (self._snap(ox + dx), self._snap(oy + dy))
                for atom_id, (ox, oy) in press.origins.items()
            }

    def pointer_up(self, px: float, py: float) -> None:
        press = self._press
        if self.state not in GESTURE_STATES or press is None:
            return

        if press.moved:
            if self.state == InteractionState.MARQUEE_SELECTING:
                self.pointer_move(px, py)
                self._select_in_marquee()
            elif self._pending:
                self.store.move_atoms(dict(self._pending))
        else:
            self._click(press)

        self._reset_gesture()

    def pointer_cancel(self) -> None:
        """Pointer capture lost: abandon the gesture without committing."""
        if self.state in GESTURE_STATES:
            logger.debug(f"Gesture cancelled in state {self.state}.")
            self._reset_gesture()

    def double_click(self, px: float, py: float) -> bool:
        """Open the inline editor on the bond whose midpoint is under the pointer."""
        if self.state in GESTURE_STATES:
            self._reset_gesture()
        elif self.state == InteractionState.INLINE_EDITING:
            self.commit_edit()

        x, y = self.viewport.to_graph(px, py)
        bond = self.bond_midpoint_at(x, y)
        if bond is None:
            return False

        anchor = self._midpoint(self.display_positions(), bond)
        self.editor = InlineEditor(bond_id=bond.id, anchor=anchor, text=format_coefficient(bond.k))
        self.state = InteractionState.INLINE_EDITING
        logger.debug(f"Inline editing bond {bond.id}.")
        return True

    # ------------------------------------------------------------------------------
    # Inline editor
    # ------------------------------------------------------------------------------
    def set_edit_text(self, text: str) -> None:
        if self.editor is not None:
            self.editor.text = text

    def commit_edit(self) -> bool:
        """Validate and apply the editor text. Invalid input is discarded."""
        editor = self.editor
        if self.state != InteractionState.INLINE_EDITING or editor is None:
            return False
        self._close_editor()
        try:
            value = parse_coefficient(editor.text)
        except ValidationError as e:
            logger.debug(f"Inline edit of bond {editor.bond_id} reverted: {e}")
            return False
        return self.store.update_bond_coefficient(editor.bond_id, value)

    def cancel_edit(self) -> None:
        if self.state == InteractionState.INLINE_EDITING:
            self._close_editor()

    # ------------------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------------------
    def key_press(self, key: str, ctrl: bool = False, shift: bool = False) -> bool:
        """
        Handle a key. ``key`` is a key name such as 'Delete', 'Escape', 'Return' or a letter.

        Returns:
            True if the key was consumed.
        """
        name = key.lower()

        if name in ("delete", "backspace"):
            return self.delete_selection()

        if self.state == InteractionState.INLINE_EDITING:
            if name in ("return", "enter"):
                self.commit_edit()
                return True
            if name == "escape":
                self.cancel_edit()
                return True
            return False

        if name == "escape" and self.state in GESTURE_STATES:
            self.pointer_cancel()
            return True

        if not ctrl:
            return False
        if name == "c":
            return self.copy_selection()
        if name in ("v", "d"):
            return bool(self.paste())
        if name == "z" and not shift:
            return self.undo()
        if name == "y" or (name == "z" and shift):
            return self.redo()
        return False

    # ------------------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------------------
    def delete_selection(self) -> bool:
        ids = self.selection
        if not ids:
            return False
        self._abandon()
        self._set_selection(set())
        self.store.remove_by_ids(ids)
        logger.debug(f"Deleted {len(ids)} atoms.")
        return True

    def copy_selection(self) -> bool:
        selection = self.selection
        if not selection:
            return False
        self.session.clipboard = Clipboard.from_selection(self.store.graph, set(selection))
        logger.debug(
            f"Copied {len(self.session.clipboard.atoms)} atoms, "
            f"{len(self.session.clipboard.bonds)} bonds."
        )
        return True

    def paste(self) -> List[int]:
        """
        Insert a copy of the clipboard, offset so it does not hide the originals.
        An empty clipboard is first filled from the selection (duplicate in place).
        """
        if self.session.clipboard.is_empty and self.selection:
            self.copy_selection()
        clipboard = self.session.clipboard
        if clipboard.is_empty:
            return []

        self._abandon()
        offset = self.config.paste_offset
        new_ids = self.store.paste_fragment(clipboard.atoms, clipboard.bonds, (offset, offset))
        self._set_selection(new_ids)
        return new_ids

    def undo(self) -> bool:
        self._abandon()
        return self.store.undo()

    def redo(self) -> bool:
        self._abandon()
        return self.store.redo()

    # ------------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------------
    def _click(self, press: _Press) -> None:
        if press.atom_id is None:
            if not press.modifier:
                self._set_selection(set())
            return
        if press.modifier:
            toggled = set(self.selection)
            toggled ^= {press.atom_id}
            self._set_selection(toggled)
        else:
            self._set_selection({press.atom_id})

    def _select_in_marquee(self) -> None:
        rect = self.marquee_rect()
        if rect is None:
            return
        x_min, x_max, y_min, y_max = rect
        self._set_selection(
            atom_id
            for atom_id, (x, y) in self.display_positions().items()
            if x_min <= x <= x_max and y_min <= y <= y_max
        )

    def _snap(self, value: float) -> float:
        if not self.snap_enabled:
            return value
        return snap_to_grid(value, self.grid_size)

    def _set_selection(self, ids: Iterable[int]) -> None:
        self._selection = set(ids)
        self.session.selected = next(iter(self._selection)) if len(self._selection) == 1 else None

    def _reset_gesture(self) -> None:
        self._press = None
        self._pending = {}
        self._marquee = None
        self.state = InteractionState.IDLE

    def _close_editor(self) -> None:
        self.editor = None
        self.state = InteractionState.IDLE

    def _abandon(self) -> None:
        """Drop any running gesture or open editor without committing."""
        if self.state == InteractionState.INLINE_EDITING:
            self._close_editor()
        elif self.state in GESTURE_STATES:
            self._reset_gesture()
