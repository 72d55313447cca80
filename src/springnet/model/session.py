"""
Session Context
===============
Per-session state that is not part of the graph itself.

Why is this file needed?
------------------------
1. No Globals: The clipboard and the persisted view settings live in one
   object owned by the application. It is passed explicitly to the store and
   to the interaction engine.
2. Persistence: The session decides where (and whether) the current graph is
   autosaved, so the store only has to say "persist this".

Classes:
    Clipboard: Copied atoms and the bonds between them.
    SessionContext: The container class.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
import logging
import os
from typing import List, Optional

from springnet.model.entities import Atom, Bond, Graph
from springnet.model.io import IOManager

logger = logging.getLogger(__name__)


@dataclass
class Clipboard:
    atoms: List[Atom] = field(default_factory=list)
    bonds: List[Bond] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.atoms

    def clear(self) -> None:
        self.atoms = []
        self.bonds = []

    @staticmethod
    def from_selection(graph: Graph, selection: set[int]) -> Clipboard:
        """
        Snapshot the selected atoms plus every bond with both ends selected.
        Selected ids that are no longer in the graph are dropped.
        """
        atoms = [copy.deepcopy(graph.atoms[i]) for i in sorted(selection) if i in graph.atoms]
        kept = {a.id for a in atoms}
        bonds = [
            copy.deepcopy(b)
            for _, b in sorted(graph.bonds.items())
            if b.i in kept and b.j in kept
        ]
        return Clipboard(atoms=atoms, bonds=bonds)


@dataclass
class SessionContext:
    """
    Holds the session-scoped state of the running editor.
    Create one per application and hand it to the GraphStore and InteractionEngine.
    """
    storage_path: Optional[str] = None
    clipboard: Clipboard = field(default_factory=Clipboard)
    zoom_percent: float = 100.0
    selected: Optional[int] = None

    def load_graph(self) -> Optional[Graph]:
        """Graph from the autosave file, or None if there is none or it is unreadable."""
        if not self.storage_path or not os.path.exists(self.storage_path):
            return None
        try:
            return IOManager.load_project(self.storage_path, session=self)
        except Exception as e:
            logger.warning(f"Ignoring unreadable session file '{self.storage_path}': {e}")
            return None

    def persist(self, graph: Graph) -> bool:
        """Autosave ``graph``. A failure is logged and reported, never raised."""
        if not self.storage_path:
            return False
        try:
            IOManager.save_project(graph, self.storage_path, session=self)
            return True
        except Exception as e:
            logger.warning(f"Could not persist session to '{self.storage_path}': {e}")
            return False

    def reset(self) -> None:
        """Clear all session data for a new project"""
        self.clipboard.clear()
        self.zoom_percent = 100.0
        self.selected = None
        logger.info("Session state has been reset.")
