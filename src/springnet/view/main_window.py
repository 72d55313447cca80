"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the canvas, the entity
tables and the data file preview.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (File -> Open, Edit -> Undo, ...) to
   the GraphStore, the InteractionEngine and the IOManager.
"""
import os
import logging

from typing import Callable, Optional
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QSplitter,
    QPlainTextEdit, QFileDialog, QMessageBox, QLabel
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QFont, QKeySequence

from springnet.config import EditorConfig
from springnet.controller.interaction import InteractionEngine
from springnet.controller.simulation import SimulationEngine, SimulationRunner, SimulationWorker
from springnet.model.codec import ExportError, generate
from springnet.model.entities import EntityKind
from springnet.model.io import IOManager
from springnet.model.store import GraphStore
from springnet.view.canvas import NetworkCanvas
from springnet.view.tables import EntityTable

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "Spring Network Editor"
DATA_FILTER = "Data Files (*.data *.lmp *.txt);;All Files (*)"
PROJECT_FILTER = "HDF5 Files (*.h5)"


class MainWindow(QMainWindow):
    def __init__(
        self,
        store: GraphStore,
        engine: InteractionEngine,
        config: EditorConfig,
        simulation_factory: Optional[Callable[[], SimulationEngine]] = None,
    ) -> None:
        super().__init__()
        self.store = store
        self.engine = engine
        self.config = config
        self.simulation_factory = simulation_factory
        self.filepath: Optional[str] = None
        self.is_modified: bool = False
        self._worker: Optional[SimulationWorker] = None

        self.update_window_title()
        self.resize(1400, 900)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QHBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)

        splitter = QSplitter(Qt.Horizontal)
        main_layout.addWidget(splitter)

        # --- LEFT SIDE: Canvas + Tables ---
        left = QWidget()
        left_layout = QVBoxLayout(left)
        self.canvas = NetworkCanvas(self.store, self.engine)
        left_layout.addWidget(self.canvas, stretch=3)

        tables = QWidget()
        tables_layout = QHBoxLayout(tables)
        tables_layout.setContentsMargins(0, 0, 0, 0)
        self.atom_table = EntityTable(self.store, EntityKind.ATOM)
        self.bond_table = EntityTable(self.store, EntityKind.BOND)
        tables_layout.addWidget(self.atom_table)
        tables_layout.addWidget(self.bond_table)
        left_layout.addWidget(tables, stretch=2)

        self.hint = QLabel(
            "Drag on empty space to box-select. Drag a selected atom to move the group. "
            "Ctrl/Shift+click toggles. Double-click a bond label to edit k. "
            "Ctrl+C, then Ctrl+V (or Ctrl+D) to duplicate."
        )
        self.hint.setWordWrap(True)
        left_layout.addWidget(self.hint)
        splitter.addWidget(left)

        # --- RIGHT SIDE: Data file preview ---
        self.preview = QPlainTextEdit()
        self.preview.setReadOnly(True)
        mono = QFont("monospace")
        mono.setStyleHint(QFont.Monospace)
        self.preview.setFont(mono)
        splitter.addWidget(self.preview)
        splitter.setSizes([950, 450])

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # --- SIGNAL CONNECTIONS ---
        self.store.graph_changed.connect(self.on_graph_changed)
        self.store.history_changed.connect(self.on_history_changed)
        self.canvas.interaction_finished.connect(self.update_status)

        self.refresh_preview()
        self.on_history_changed(self.store.can_undo, self.store.can_redo)
        self.update_status()

    def _create_actions(self) -> None:
        # File Actions
        self.act_new = QAction("New", self)
        self.act_new.setShortcut(QKeySequence.New)
        self.act_new.triggered.connect(self.on_file_new)

        self.act_open = QAction("Open Project...", self)
        self.act_open.setShortcut(QKeySequence.Open)
        self.act_open.triggered.connect(self.on_file_open)

        self.act_save = QAction("Save Project", self)
        self.act_save.setShortcut(QKeySequence.Save)
        self.act_save.triggered.connect(self.on_file_save)

        self.act_save_as = QAction("Save Project As...", self)
        self.act_save_as.setShortcut(QKeySequence("Ctrl+Shift+S"))
        self.act_save_as.triggered.connect(self.on_file_save_as)

        self.act_import = QAction("Load Data File...", self)
        self.act_import.triggered.connect(self.on_import_data)

        self.act_export = QAction("Export Data File...", self)
        self.act_export.setShortcut(QKeySequence("Ctrl+E"))
        self.act_export.triggered.connect(self.on_export_data)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        # Edit Actions
        self.act_undo = QAction("Undo", self)
        self.act_undo.setShortcuts([QKeySequence("Ctrl+Z")])
        self.act_undo.triggered.connect(lambda: self._run(self.engine.undo))

        self.act_redo = QAction("Redo", self)
        self.act_redo.setShortcuts([QKeySequence("Ctrl+Y"), QKeySequence("Ctrl+Shift+Z")])
        self.act_redo.triggered.connect(lambda: self._run(self.engine.redo))

        self.act_add_atom = QAction("Add Atom", self)
        self.act_add_atom.triggered.connect(lambda: self._run(self.store.add_atom))

        self.act_add_bond = QAction("Add Bond", self)
        self.act_add_bond.triggered.connect(
            lambda: self._run(lambda: self.store.add_bond(self.config.default_bond_k))
        )

        self.act_bond_selected = QAction("Bond Selected Pair", self)
        self.act_bond_selected.triggered.connect(self.on_bond_selected)

        self.act_clear_atoms = QAction("Clear Atoms", self)
        self.act_clear_atoms.triggered.connect(lambda: self._run(self.store.clear_atoms))

        self.act_clear_bonds = QAction("Clear Bonds", self)
        self.act_clear_bonds.triggered.connect(lambda: self._run(self.store.clear_bonds))

        # View Actions
        self.act_snap = QAction("Snap to Grid", self)
        self.act_snap.setCheckable(True)
        self.act_snap.setChecked(self.engine.snap_enabled)
        self.act_snap.toggled.connect(self.on_snap_toggled)

        self.act_zoom_in = QAction("Zoom In", self)
        self.act_zoom_in.setShortcut(QKeySequence.ZoomIn)
        self.act_zoom_in.triggered.connect(lambda: self._zoom(1.25))

        self.act_zoom_out = QAction("Zoom Out", self)
        self.act_zoom_out.setShortcut(QKeySequence.ZoomOut)
        self.act_zoom_out.triggered.connect(lambda: self._zoom(0.8))

        self.act_zoom_reset = QAction("Reset Zoom", self)
        self.act_zoom_reset.triggered.connect(lambda: self._zoom(None))

        # Simulation Actions
        self.act_sim_run = QAction("Run Preview", self)
        self.act_sim_run.triggered.connect(self.on_simulation_run)
        self.act_sim_run.setEnabled(self.simulation_factory is not None)

        self.act_sim_stop = QAction("Stop Preview", self)
        self.act_sim_stop.triggered.connect(self.on_simulation_stop)
        self.act_sim_stop.setEnabled(False)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_new)
        file_menu.addSeparator()
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_save)
        file_menu.addAction(self.act_save_as)
        file_menu.addSeparator()
        file_menu.addAction(self.act_import)
        file_menu.addAction(self.act_export)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

        edit_menu = menu_bar.addMenu("&Edit")
        edit_menu.addAction(self.act_undo)
        edit_menu.addAction(self.act_redo)
        edit_menu.addSeparator()
        edit_menu.addAction(self.act_add_atom)
        edit_menu.addAction(self.act_add_bond)
        edit_menu.addAction(self.act_bond_selected)
        edit_menu.addSeparator()
        edit_menu.addAction(self.act_clear_atoms)
        edit_menu.addAction(self.act_clear_bonds)

        view_menu = menu_bar.addMenu("&View")
        view_menu.addAction(self.act_snap)
        view_menu.addSeparator()
        view_menu.addAction(self.act_zoom_in)
        view_menu.addAction(self.act_zoom_out)
        view_menu.addAction(self.act_zoom_reset)

        sim_menu = menu_bar.addMenu("&Simulation")
        sim_menu.addAction(self.act_sim_run)
        sim_menu.addAction(self.act_sim_stop)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        """Updates the window title based on filename and dirty state."""
        filename = self.filepath if self.filepath else "Untitled"
        title = f"{VISIBLE_APP_NAME} - [{os.path.basename(filename)}"
        if self.is_modified:
            title += "*"
        title += "]"
        self.setWindowTitle(title)

    def set_modified(self, modified: bool) -> None:
        if self.is_modified != modified:
            self.is_modified = modified
            self.update_window_title()

    def _run(self, command: Callable[[], object]) -> None:
        command()
        self.canvas.update()
        self.update_status()

    def _zoom(self, factor: Optional[float]) -> None:
        current = self.engine.viewport.zoom_percent
        self.engine.set_zoom_percent(100.0 if factor is None else current * factor)
        self.canvas.update()
        self.update_status()

    def refresh_preview(self) -> None:
        try:
            self.preview.setPlainText(generate(self.store.graph))
        except ExportError as e:
            self.preview.setPlainText(f"# {e}")

    def update_status(self) -> None:
        graph = self.store.graph
        self.statusBar().showMessage(
            f"{len(graph.atoms)} atoms | {len(graph.bonds)} bonds | "
            f"{len(self.engine.selection)} selected | zoom {self.engine.viewport.zoom_percent:.0f} %"
        )

    # --- SLOTS ---
    def on_graph_changed(self, _graph) -> None:
        self.set_modified(True)
        self.refresh_preview()
        self.update_status()

    def on_history_changed(self, can_undo: bool, can_redo: bool) -> None:
        self.act_undo.setEnabled(can_undo)
        self.act_redo.setEnabled(can_redo)

    def on_snap_toggled(self, enabled: bool) -> None:
        self.engine.set_grid_snap(enabled)
        self.config.snap_to_grid = enabled
        self.canvas.update()

    def on_bond_selected(self) -> None:
        selection = sorted(self.engine.selection)
        if len(selection) != 2:
            self.statusBar().showMessage("Select exactly two atoms to bond them.", 3000)
            return
        self._run(lambda: self.store.add_bond_between(selection[0], selection[1], self.config.default_bond_k))

    # --- FILE SLOTS ---
    def on_file_new(self) -> None:
        self.store.clear_atoms()
        self.store.clear_history()
        self.store.session.reset()
        self.engine.set_selection([])
        self.filepath = None
        self.set_modified(False)
        self.update_window_title()
        self.canvas.update()
        logger.info("New project started.")

    def on_file_open(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Open Project", "", PROJECT_FILTER)
        if fname:
            try:
                graph = IOManager.load_project(fname)
                self.store.replace_graph(graph)
                self.filepath = fname
                self.is_modified = False
                self.update_window_title()
            except Exception as e:
                logger.error(f"Failed to open project: {e}")
                QMessageBox.critical(self, "Error", f"Could not open file:\n{e}")

    def on_file_save(self) -> None:
        if self.filepath:
            try:
                IOManager.save_project(self.store.graph, self.filepath)
                self.set_modified(False)
            except Exception as e:
                QMessageBox.critical(self, "Error", f"Could not save file:\n{e}")
        else:
            self.on_file_save_as()

    def on_file_save_as(self) -> None:
        fname, _ = QFileDialog.getSaveFileName(self, "Save Project", "", PROJECT_FILTER)
        if fname:
            if not fname.endswith(".h5"):
                fname += ".h5"
            try:
                IOManager.save_project(self.store.graph, fname)
                self.filepath = fname
                self.is_modified = False
                self.update_window_title()
            except Exception as e:
                QMessageBox.critical(self, "Error", f"Could not save file:\n{e}")

    def on_import_data(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Load Data File", "", DATA_FILTER)
        if fname:
            try:
                self.store.load_from_string(IOManager.read_text_file(fname))
                self.engine.set_selection([])
            except OSError as e:
                QMessageBox.critical(self, "Error", f"Could not read file:\n{e}")

    def on_export_data(self) -> None:
        fname, _ = QFileDialog.getSaveFileName(self, "Export Data File", "network.data", DATA_FILTER)
        if fname:
            try:
                IOManager.export_data_file(self.store.graph, fname)
                self.statusBar().showMessage(f"Exported {os.path.basename(fname)}", 3000)
            except ExportError as e:
                QMessageBox.warning(self, "Export", str(e))
            except OSError as e:
                QMessageBox.critical(self, "Error", f"Could not write file:\n{e}")

    # --- SIMULATION SLOTS ---
    def on_simulation_run(self) -> None:
        if self.simulation_factory is None or self._worker is not None:
            return
        try:
            topology = generate(self.store.graph)
        except ExportError as e:
            QMessageBox.warning(self, "Simulation", str(e))
            return

        runner = SimulationRunner(self.simulation_factory())
        self._worker = SimulationWorker(runner, topology)
        self._worker.frame_ready.connect(self.on_simulation_frame)
        self._worker.error_occurred.connect(self.on_simulation_error)
        self._worker.finished.connect(self.on_simulation_finished)
        self._worker.start()
        self.act_sim_run.setEnabled(False)
        self.act_sim_stop.setEnabled(True)

    def on_simulation_stop(self) -> None:
        if self._worker is not None:
            self._worker.stop()

    def on_simulation_frame(self, frame) -> None:
        frames = len(self._worker.runner.frames) if self._worker is not None else 0
        self.statusBar().showMessage(
            f"Preview frame {frames}: {frame.atom_count} atoms, {frame.bond_count} bonds"
        )

    def on_simulation_error(self, message: str) -> None:
        logger.error(f"Simulation preview failed: {message}")
        QMessageBox.critical(self, "Simulation", f"Simulation failed:\n{message}")

    def on_simulation_finished(self) -> None:
        self._worker = None
        self.act_sim_run.setEnabled(self.simulation_factory is not None)
        self.act_sim_stop.setEnabled(False)

    def closeEvent(self, event, /) -> None:
        """Stop the preview thread before the window goes away."""
        if self._worker is not None:
            self._worker.stop()
            self._worker.wait(2000)
        self.config.to_settings()
        event.accept()
