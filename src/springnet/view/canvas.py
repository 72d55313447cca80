"""
Network Canvas
==============
QWidget that paints the network and forwards mouse/keyboard input to the
InteractionEngine. It never changes the graph itself.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, QPointF, QRectF, Signal
from PySide6.QtGui import QBrush, QColor, QFont, QPainter, QPen
from PySide6.QtWidgets import QLineEdit, QWidget

from springnet.controller.interaction import GESTURE_STATES, InteractionEngine, InteractionState
from springnet.model.store import GraphStore

logger = logging.getLogger(__name__)

# Colours
BACKGROUND = QColor("#f8fafc")
GRID = QColor("#e2e8f0")
BOND = QColor("#334155")
BOND_SELECTED = QColor("#1e40af")
ATOM = QColor("#0ea5e9")
ATOM_EDGE = QColor("#0c4a6e")
ATOM_SELECTED = QColor("#2563eb")
ATOM_SELECTED_EDGE = QColor("#1e3a8a")
LABEL = QColor("#111827")
MARQUEE = QColor("#3b82f6")

ATOM_RADIUS_PX = 8.0

# Qt key -> key name understood by InteractionEngine.key_press
_KEY_NAMES = {
    Qt.Key_Delete: "Delete",
    Qt.Key_Backspace: "Backspace",
    Qt.Key_Escape: "Escape",
    Qt.Key_Return: "Return",
    Qt.Key_Enter: "Enter",
}


class _InlineLineEdit(QLineEdit):
    """QLineEdit that reports Escape instead of ignoring it."""
    cancelled = Signal()

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key_Escape:
            self.cancelled.emit()
            return
        super().keyPressEvent(event)


class NetworkCanvas(QWidget):
    # Emitted after any input that may have changed selection or graph
    interaction_finished = Signal()

    def __init__(self, store: GraphStore, engine: InteractionEngine, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.store = store
        self.engine = engine

        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setMouseTracking(False)

        self._editor = _InlineLineEdit(self)
        self._editor.setFixedWidth(90)
        self._editor.hide()
        self._editor.textEdited.connect(self.engine.set_edit_text)
        self._editor.returnPressed.connect(self._commit_editor)
        self._editor.editingFinished.connect(self._commit_editor)
        self._editor.cancelled.connect(self._cancel_editor)

        self.store.graph_changed.connect(lambda _graph: self.update())

    # ------------------------------------------------------------------------------
    # Inline editor plumbing
    # ------------------------------------------------------------------------------
    def _sync_editor(self) -> None:
        editor = self.engine.editor
        if self.engine.state != InteractionState.INLINE_EDITING or editor is None:
            if self._editor.isVisible():
                self._editor.hide()
                self.setFocus()
            return
        if not self._editor.isVisible():
            cx, cy = self.engine.viewport.to_canvas(*editor.anchor)
            self._editor.setText(editor.text)
            self._editor.move(int(cx - self._editor.width() / 2), int(cy - self._editor.height() / 2))
            self._editor.show()
            self._editor.setFocus()
            self._editor.selectAll()

    def _commit_editor(self) -> None:
        if self.engine.state == InteractionState.INLINE_EDITING:
            self.engine.set_edit_text(self._editor.text())
            self.engine.commit_edit()
        self._after_input()

    def _cancel_editor(self) -> None:
        self.engine.cancel_edit()
        self._after_input()

    def _after_input(self) -> None:
        self._sync_editor()
        self.update()
        self.interaction_finished.emit()

    # ------------------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------------------
    @staticmethod
    def _has_modifier(event) -> bool:
        return bool(event.modifiers() & (Qt.ShiftModifier | Qt.ControlModifier | Qt.MetaModifier))

    def mousePressEvent(self, event) -> None:
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return
        pos = event.position()
        self.engine.pointer_down(pos.x(), pos.y(), modifier=self._has_modifier(event))
        self._after_input()

    def mouseMoveEvent(self, event) -> None:
        pos = event.position()
        held = bool(event.buttons() & Qt.LeftButton)
        self.engine.pointer_move(pos.x(), pos.y(), primary_held=held)
        if self.engine.state in GESTURE_STATES:
            self.update()

    def mouseReleaseEvent(self, event) -> None:
        if event.button() != Qt.LeftButton:
            super().mouseReleaseEvent(event)
            return
        pos = event.position()
        self.engine.pointer_up(pos.x(), pos.y())
        self._after_input()

    def mouseDoubleClickEvent(self, event) -> None:
        if event.button() != Qt.LeftButton:
            return
        pos = event.position()
        self.engine.double_click(pos.x(), pos.y())
        self._after_input()

    def focusOutEvent(self, event) -> None:
        # Losing focus mid-gesture means we may never see the release
        if self.engine.state in GESTURE_STATES and not self._editor.hasFocus():
            logger.debug("Canvas lost focus during a gesture.")
            self.engine.pointer_cancel()
            self.update()
        super().focusOutEvent(event)

    def keyPressEvent(self, event) -> None:
        key = event.key()
        name = _KEY_NAMES.get(key)
        if name is None and Qt.Key_A <= key <= Qt.Key_Z:
            name = chr(key)
        if name is None:
            super().keyPressEvent(event)
            return
        mods = event.modifiers()
        ctrl = bool(mods & (Qt.ControlModifier | Qt.MetaModifier))
        shift = bool(mods & Qt.ShiftModifier)
        if self.engine.key_press(name, ctrl=ctrl, shift=shift):
            event.accept()
            self._after_input()
        else:
            super().keyPressEvent(event)

    def wheelEvent(self, event) -> None:
        steps = event.angleDelta().y() / 120.0
        if steps:
            self.engine.set_zoom_percent(self.engine.viewport.zoom_percent * (1.1 ** steps))
            self.update()

    def resizeEvent(self, event) -> None:
        self.engine.resize(self.width(), self.height())
        super().resizeEvent(event)

    # ------------------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------------------
    def paintEvent(self, event) -> None:
        viewport = self.engine.viewport
        viewport.resize(self.width(), self.height())
        positions = self.engine.display_positions()
        selection = self.engine.selection

        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.fillRect(self.rect(), BACKGROUND)

        if self.engine.snap_enabled:
            self._paint_grid(painter)

        font = QFont()
        font.setPixelSize(12)
        painter.setFont(font)

        # Bonds with their stiffness label
        for bond in self.store.graph.bonds.values():
            if bond.i not in positions or bond.j not in positions:
                continue
            x1, y1 = viewport.to_canvas(*positions[bond.i])
            x2, y2 = viewport.to_canvas(*positions[bond.j])
            both = bond.i in selection and bond.j in selection
            painter.setPen(QPen(BOND_SELECTED if both else BOND, 2))
            painter.drawLine(QPointF(x1, y1), QPointF(x2, y2))
            painter.setPen(LABEL)
            painter.drawText(QPointF((x1 + x2) / 2 + 6, (y1 + y2) / 2 - 6), f"k={bond.k:g}")

        # Atoms on top
        for atom_id, (x, y) in positions.items():
            cx, cy = viewport.to_canvas(x, y)
            selected = atom_id in selection
            painter.setPen(QPen(ATOM_SELECTED_EDGE if selected else ATOM_EDGE, 1))
            painter.setBrush(QBrush(ATOM_SELECTED if selected else ATOM))
            painter.drawEllipse(QPointF(cx, cy), ATOM_RADIUS_PX, ATOM_RADIUS_PX)
            painter.setPen(LABEL)
            painter.drawText(QPointF(cx + 10, cy - 10), str(atom_id))

        rect = self.engine.marquee_rect()
        if rect is not None:
            x_min, x_max, y_min, y_max = rect
            left, top = viewport.to_canvas(x_min, y_min)
            right, bottom = viewport.to_canvas(x_max, y_max)
            fill = QColor(MARQUEE)
            fill.setAlphaF(0.15)
            pen = QPen(MARQUEE, 1.5, Qt.DashLine)
            painter.setPen(pen)
            painter.setBrush(QBrush(fill))
            painter.drawRect(QRectF(QPointF(left, top), QPointF(right, bottom)))

        painter.end()

    def _paint_grid(self, painter: QPainter) -> None:
        viewport = self.engine.viewport
        step = self.engine.grid_size * viewport.pixels_per_unit
        if step < 4.0:
            return
        painter.setPen(QPen(GRID, 1))
        ox, oy = viewport.to_canvas(0.0, 0.0)
        x = ox % step
        while x < self.width():
            painter.drawLine(QPointF(x, 0), QPointF(x, self.height()))
            x += step
        y = oy % step
        while y < self.height():
            painter.drawLine(QPointF(0, y), QPointF(self.width(), y))
            y += step
