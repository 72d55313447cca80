"""
Input/Output Manager (HDF5 + data files)
Handles saving and loading the network to .h5 project files and
exporting/importing the plain-text data format.
"""
from __future__ import annotations

import logging
import os
from importlib.metadata import version, PackageNotFoundError
from typing import Optional, TYPE_CHECKING

import h5py
import numpy as np

from springnet.model.codec import generate
from springnet.model.entities import Atom, Bond, Graph, sanitize

if TYPE_CHECKING:
    from springnet.model.session import SessionContext

# Get module logger
logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("springnet")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"


class IOManager:

    @staticmethod
    def save_project(graph: Graph, filepath: str, session: Optional[SessionContext] = None) -> None:
        logger.info(f"Saving project to: {filepath}")
        try:
            parent = os.path.dirname(filepath)
            if parent:
                os.makedirs(parent, exist_ok=True)

            with h5py.File(filepath, "w") as f:
                f.attrs["version"] = APP_VERSION

                # --- 1. SAVE ATOMS ---
                # One row per atom: (id, x, y). Row order is drawing order.
                atom_rows = np.array(
                    [(a.id, a.x, a.y) for a in graph.atoms.values()], dtype=np.float64
                ).reshape(-1, 3)
                f.create_dataset("atoms", data=atom_rows)

                # --- 2. SAVE BONDS ---
                # Integer part (id, i, j) and stiffness are kept apart so ids stay exact
                bond_rows = np.array(
                    [(b.id, b.i, b.j) for b in graph.bonds.values()], dtype=np.int64
                ).reshape(-1, 3)
                bond_k = np.array([b.k for b in graph.bonds.values()], dtype=np.float64)
                f.create_dataset("bonds", data=bond_rows)
                f.create_dataset("bond_k", data=bond_k)

                # --- 3. SAVE SESSION STATE ---
                if session is not None:
                    f.attrs["zoom_percent"] = float(session.zoom_percent)
                    if session.selected is not None:
                        f.attrs["selected"] = int(session.selected)

            logger.info(f"Project saved to: {filepath}")

        except Exception as e:
            logger.exception(f"Failed to save project: {e}")
            raise e

    @staticmethod
    def load_project(filepath: str, session: Optional[SessionContext] = None) -> Graph:
        logger.info(f"Loading project from: {filepath}")
        if not h5py.is_hdf5(filepath):
            msg = f"File '{filepath}' is not a valid HDF5 file."
            logger.error(msg)
            raise ValueError(msg)

        try:
            with h5py.File(filepath, "r") as f:
                graph = Graph()

                # --- 1. LOAD ATOMS ---
                if "atoms" in f:
                    for atom_id, x, y in f["atoms"][:]:
                        # HDF5 hands back numpy scalars, convert to native python
                        graph.atoms[int(atom_id)] = Atom(id=int(atom_id), x=float(x), y=float(y))

                # --- 2. LOAD BONDS ---
                if "bonds" in f:
                    rows = f["bonds"][:]
                    ks = f["bond_k"][:] if "bond_k" in f else np.ones(len(rows))
                    for (bond_id, i, j), k in zip(rows, ks):
                        graph.bonds[int(bond_id)] = Bond(id=int(bond_id), i=int(i), j=int(j), k=float(k))

                # --- 3. LOAD SESSION STATE ---
                if session is not None:
                    if "zoom_percent" in f.attrs:
                        session.zoom_percent = float(f.attrs["zoom_percent"])
                    if "selected" in f.attrs:
                        session.selected = int(f.attrs["selected"])

            # Files written by other tools may hold bonds we would never commit
            graph = sanitize(graph)
            logger.info(
                f"Project loaded from: {filepath} "
                f"({len(graph.atoms)} atoms, {len(graph.bonds)} bonds)"
            )
            return graph

        except Exception as e:
            logger.exception(f"Failed to load project: {e}")
            raise e

    # ---- DATA FILE HELPERS ----
    @staticmethod
    def export_data_file(graph: Graph, filepath: str) -> None:
        """
        Writes the network as a data file.
        ExportError from the codec is passed through untouched.
        """
        text = generate(graph)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(text)
            logger.info(f"Data file exported to: {filepath}")
        except OSError as e:
            logger.exception("Failed to export data file")
            raise e

    @staticmethod
    def read_text_file(filepath: str) -> str:
        """Reads a data file for the codec. Undecodable bytes are replaced, not raised."""
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Data file not found: {filepath}")

        with open(filepath, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()
        logger.info(f"Read {len(text)} characters from: {filepath}")
        return text
