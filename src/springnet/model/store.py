"""
Graph Store
===========
The only object allowed to change the graph.

Why is this file needed?
------------------------
1. Transactions: Every edit is a `commit(updater)`. The updater works on a deep
   copy; if the result equals the current graph nothing is recorded, so
   repeated no-op edits (e.g. a drag that ends where it began) never pollute
   the history.
2. Undo/Redo: Each history entry is a deep snapshot. Nothing in the history
   shares objects with the live graph.
3. Integrity: Convenience commits refuse self-loops, dangling endpoints and
   duplicate bonds instead of raising.
4. Signals: Views redraw on `graph_changed` and toggle undo/redo buttons on
   `history_changed`.
"""
from __future__ import annotations

import copy
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from springnet.config import DEFAULT_BOND_K, HISTORY_LIMIT
from springnet.model.codec import parse
from springnet.model.entities import (
    Atom, Bond, EntityKind, Graph, bond_violation, default_graph, get_field_descriptor, next_id,
    sanitize,
)
from springnet.model.session import SessionContext

logger = logging.getLogger(__name__)

Updater = Callable[[Graph], Optional[Graph]]


class GraphStore(QObject):
    """Central graph store with transactional history."""
    graph_changed = Signal(object)
    history_changed = Signal(bool, bool)

    def __init__(
        self,
        session: Optional[SessionContext] = None,
        initial: Optional[Graph] = None,
        history_limit: Optional[int] = HISTORY_LIMIT,
    ) -> None:
        super().__init__()
        self.session = session if session is not None else SessionContext()
        self.history_limit = history_limit

        persisted = self.session.load_graph()
        if persisted is not None:
            self._graph = sanitize(persisted)
            logger.info("Graph restored from session storage.")
        elif initial is not None:
            self._graph = sanitize(initial)
        else:
            self._graph = default_graph()

        self._past: List[Graph] = []
        self._future: List[Graph] = []

    # ------------------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------------------
    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def undo_depth(self) -> int:
        return len(self._past)

    @property
    def redo_depth(self) -> int:
        return len(self._future)

    # ------------------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------------------
    def commit(self, updater: Updater) -> bool:
        """
        Apply ``updater`` to a copy of the current graph.

        Returns:
            True if the graph changed and a history entry was recorded.
        """
        candidate = updater(copy.deepcopy(self._graph))
        if candidate is None or candidate == self._graph:
            return False

        self._past.append(copy.deepcopy(self._graph))
        if self.history_limit is not None and len(self._past) > self.history_limit:
            del self._past[0]
        self._future.clear()
        # The updater may still hold references into its result
        self._graph = copy.deepcopy(candidate)
        logger.debug(f"Commit: {len(self._graph.atoms)} atoms, {len(self._graph.bonds)} bonds.")
        self._after_change()
        return True

    def undo(self) -> bool:
        if not self._past:
            return False
        self._future.append(copy.deepcopy(self._graph))
        self._graph = copy.deepcopy(self._past.pop())
        logger.debug(f"Undo ({len(self._past)} left).")
        self._after_change()
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        self._past.append(copy.deepcopy(self._graph))
        self._graph = copy.deepcopy(self._future.pop())
        logger.debug(f"Redo ({len(self._future)} left).")
        self._after_change()
        return True

    def clear_history(self) -> None:
        self._past.clear()
        self._future.clear()
        self.history_changed.emit(False, False)

    def _after_change(self) -> None:
        self.session.persist(self._graph)
        self.graph_changed.emit(self._graph)
        self.history_changed.emit(self.can_undo, self.can_redo)

    # ------------------------------------------------------------------------------
    # Atoms
    # ------------------------------------------------------------------------------
    def add_atom(self, x: float = 0.0, y: float = 0.0) -> int:
        new_id = self._graph.next_atom_id()

        def updater(g: Graph) -> Graph:
            g.atoms[new_id] = Atom(id=new_id, x=x, y=y)
            return g

        self.commit(updater)
        return new_id

    def remove_atom(self, atom_id: int) -> bool:
        return self.remove_by_ids([atom_id])

    def remove_by_ids(self, ids: Iterable[int]) -> bool:
        """Remove atoms and, in the same commit, every bond touching them."""
        target = set(ids)
        if not target:
            return False

        def updater(g: Graph) -> Graph:
            g.atoms = {i: a for i, a in g.atoms.items() if i not in target}
            g.bonds = {i: b for i, b in g.bonds.items() if b.i not in target and b.j not in target}
            return g

        return self.commit(updater)

    def move_atoms(self, positions: Dict[int, Tuple[float, float]]) -> bool:
        """Set many atom positions as one commit. Unknown ids are ignored."""
        if not positions:
            return False

        def updater(g: Graph) -> Graph:
            for atom_id, (x, y) in positions.items():
                atom = g.atoms.get(atom_id)
                if atom is not None:
                    atom.x = float(x)
                    atom.y = float(y)
            return g

        return self.commit(updater)

    def clear_atoms(self) -> bool:
        return self.commit(lambda g: Graph())

    # ------------------------------------------------------------------------------
    # Bonds
    # ------------------------------------------------------------------------------
    def add_bond(self, k: float = DEFAULT_BOND_K) -> Optional[int]:
        """Bond the first pair of atoms (ascending ids) that is not connected yet."""
        atom_ids = sorted(self._graph.atoms)
        connected = {b.pair for b in self._graph.bonds.values()}
        for n, i in enumerate(atom_ids):
            for j in atom_ids[n + 1:]:
                if (i, j) not in connected:
                    return self.add_bond_between(i, j, k)
        logger.debug("add_bond: no unconnected atom pair left.")
        return None

    def add_bond_between(self, i: int, j: int, k: float = DEFAULT_BOND_K) -> Optional[int]:
        """
        Bond atoms ``i`` and ``j``.

        Returns:
            The new bond id, or None when the bond would be a self-loop,
            reference a missing atom or duplicate an existing pair.
        """
        reason = bond_violation(self._graph, i, j)
        if reason is not None:
            logger.debug(f"Rejected bond {i}-{j}: {reason}.")
            return None
        new_id = self._graph.next_bond_id()

        def updater(g: Graph) -> Graph:
            g.bonds[new_id] = Bond(id=new_id, i=i, j=j, k=float(k))
            return g

        return new_id if self.commit(updater) else None

    def remove_bond(self, bond_id: int) -> bool:
        def updater(g: Graph) -> Graph:
            g.bonds.pop(bond_id, None)
            return g

        return self.commit(updater)

    def update_bond_coefficient(self, bond_id: int, k: float) -> bool:
        def updater(g: Graph) -> Graph:
            bond = g.bonds.get(bond_id)
            if bond is not None:
                bond.k = float(k)
            return g

        return self.commit(updater)

    def clear_bonds(self) -> bool:
        def updater(g: Graph) -> Graph:
            g.bonds = {}
            return g

        return self.commit(updater)

    # ------------------------------------------------------------------------------
    # Table edits
    # ------------------------------------------------------------------------------
    def set_field(self, kind: EntityKind, entity_id: int, name: str, value: float) -> bool:
        """
        Edit one field through the field descriptor table.
        Read-only fields and edits that would break bond integrity are rejected.
        """
        descriptor = get_field_descriptor(kind, name)
        if descriptor.read_only:
            return False
        typed = descriptor.value_type(value)

        def updater(g: Graph) -> Graph:
            if kind == EntityKind.ATOM:
                atom = g.atoms.get(entity_id)
                if atom is not None:
                    setattr(atom, name, typed)
                return g

            bond = g.bonds.get(entity_id)
            if bond is None:
                return g
            if name in ("i", "j"):
                i = typed if name == "i" else bond.i
                j = typed if name == "j" else bond.j
                reason = bond_violation(g, i, j, ignore_bond=bond.id)
                if reason is not None:
                    logger.debug(f"Rejected edit of bond {bond.id}: {reason}.")
                    return g
            setattr(bond, name, typed)
            return g

        return self.commit(updater)

    # ------------------------------------------------------------------------------
    # Clipboard / whole-graph operations
    # ------------------------------------------------------------------------------
    def paste_fragment(
        self,
        atoms: Iterable[Atom],
        bonds: Iterable[Bond],
        offset: Tuple[float, float] = (0.0, 0.0),
    ) -> List[int]:
        """
        Insert copies of ``atoms`` and ``bonds`` as one commit.

        Atom ids are reassigned from max+1 in ascending order of the original
        id; bond ids likewise. Bonds whose endpoints are not among ``atoms`` are
        dropped.

        Returns:
            The new atom ids, in ascending order.
        """
        atoms = sorted(atoms, key=lambda a: a.id)
        bonds = sorted(bonds, key=lambda b: b.id)
        if not atoms:
            return []

        dx, dy = offset
        first_atom = next_id(self._graph.atoms)
        id_map = {atom.id: first_atom + n for n, atom in enumerate(atoms)}
        new_atoms = [Atom(id=id_map[a.id], x=a.x + dx, y=a.y + dy) for a in atoms]

        first_bond = next_id(self._graph.bonds)
        new_bonds: List[Bond] = []
        for bond in bonds:
            if bond.i not in id_map or bond.j not in id_map or bond.i == bond.j:
                continue
            new_bonds.append(
                Bond(id=first_bond + len(new_bonds), i=id_map[bond.i], j=id_map[bond.j], k=bond.k)
            )

        def updater(g: Graph) -> Graph:
            for atom in new_atoms:
                g.atoms[atom.id] = atom
            for bond in new_bonds:
                if bond_violation(g, bond.i, bond.j) is None:
                    g.bonds[bond.id] = bond
            return g

        self.commit(updater)
        return [a.id for a in new_atoms]

    def replace_graph(self, graph: Graph) -> bool:
        """Replace the whole graph as one commit. Bonds that break integrity are dropped."""
        return self.commit(lambda g: sanitize(graph))

    def load_from_string(self, text: str) -> bool:
        """Replace the entire graph with the parsed data file, as one commit."""
        parsed = parse(text)
        logger.info(f"Loading graph from text: {len(parsed.atoms)} atoms, {len(parsed.bonds)} bonds.")
        return self.commit(lambda g: parsed)
