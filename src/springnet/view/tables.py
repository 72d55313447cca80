"""
Entity Tables
=============
Editable atom/bond lists. Columns come from FIELD_DESCRIPTORS, so both tables
share one implementation and every edit goes through GraphStore.set_field.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QGroupBox, QHeaderView, QPushButton, QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget
)

from springnet.controller.inline_edit import ValidationError, format_coefficient, parse_coefficient
from springnet.model.entities import EntityKind, FIELD_DESCRIPTORS
from springnet.model.store import GraphStore

logger = logging.getLogger(__name__)

TABLE_TITLES = {
    EntityKind.ATOM: "Atoms",
    EntityKind.BOND: "Bonds",
}


class EntityTable(QGroupBox):
    def __init__(self, store: GraphStore, kind: EntityKind, parent: Optional[QWidget] = None) -> None:
        super().__init__(TABLE_TITLES[kind], parent)
        self.store = store
        self.kind = kind
        self.descriptors = FIELD_DESCRIPTORS[kind]
        self._loading = False

        layout = QVBoxLayout(self)
        self.table = QTableWidget(0, len(self.descriptors) + 1)
        self.table.setHorizontalHeaderLabels([d.label for d in self.descriptors] + [""])
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.table.verticalHeader().setVisible(False)
        layout.addWidget(self.table)

        self.table.cellChanged.connect(self._on_cell_changed)
        self.store.graph_changed.connect(lambda _graph: self.load_from_store())
        self.load_from_store()

    def _entities(self):
        graph = self.store.graph
        return list(graph.atoms.values() if self.kind == EntityKind.ATOM else graph.bonds.values())

    def load_from_store(self) -> None:
        """Rebuild all rows from the current graph."""
        self._loading = True
        try:
            entities = self._entities()
            self.table.setRowCount(len(entities))
            for row, entity in enumerate(entities):
                for col, descriptor in enumerate(self.descriptors):
                    value = getattr(entity, descriptor.name)
                    text = str(value) if descriptor.value_type is int else format_coefficient(value)
                    item = QTableWidgetItem(text)
                    item.setData(Qt.UserRole, entity.id)
                    if descriptor.read_only:
                        item.setFlags(item.flags() & ~Qt.ItemIsEditable)
                    self.table.setItem(row, col, item)

                button = QPushButton("remove")
                button.clicked.connect(lambda _checked=False, entity_id=entity.id: self._remove(entity_id))
                self.table.setCellWidget(row, len(self.descriptors), button)
        finally:
            self._loading = False

    def _on_cell_changed(self, row: int, col: int) -> None:
        if self._loading or col >= len(self.descriptors):
            return
        item = self.table.item(row, col)
        descriptor = self.descriptors[col]
        entity_id = item.data(Qt.UserRole)
        try:
            value = parse_coefficient(item.text())
        except ValidationError as e:
            logger.debug(f"Table edit rejected: {e}")
            value = None
        if value is None or not self.store.set_field(self.kind, entity_id, descriptor.name, value):
            # Rejected or unchanged: show the stored value again
            self.load_from_store()

    def _remove(self, entity_id: int) -> None:
        if self.kind == EntityKind.ATOM:
            self.store.remove_atom(entity_id)
        else:
            self.store.remove_bond(entity_id)
