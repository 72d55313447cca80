"""
Network Entities (Data Model)
=============================
Plain value types for the spring network: atoms, bonds and the graph holding them.

Why is this file needed?
------------------------
1. Single Source of Truth: Every other module (codec, store, canvas) speaks in
   terms of these dataclasses.
2. Integrity Rules: The helpers at the bottom decide whether a bond may exist
   (no self-loops, no dangling endpoints, no duplicate pairs). The store calls
   them before it commits anything.
3. Field Table: FIELD_DESCRIPTORS replaces loosely typed table rows with an
   explicit per-kind list of editable columns.

Classes:
    Atom, Bond: Entity value types.
    Graph: Container keyed by id.
    EntityKind: Closed set of entity kinds.
    FieldDescriptor: Metadata for one editable column.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Dict, Iterable, Optional, Tuple, Any

logger = logging.getLogger(__name__)


class EntityKind(StrEnum):
    ATOM = "atom"
    BOND = "bond"


@dataclass
class Atom:
    id: int
    x: float
    y: float


@dataclass
class Bond:
    """A spring between atoms ``i`` and ``j`` with stiffness ``k``."""
    id: int
    i: int
    j: int
    k: float = 1.0

    @property
    def pair(self) -> Tuple[int, int]:
        """Endpoints as an unordered (sorted) pair."""
        return (self.i, self.j) if self.i <= self.j else (self.j, self.i)


@dataclass
class Graph:
    """
    Atoms and bonds keyed by their ids.
    Insertion order is the drawing order (the last atom is drawn on top).
    """
    atoms: Dict[int, Atom] = field(default_factory=dict)
    bonds: Dict[int, Bond] = field(default_factory=dict)

    @staticmethod
    def from_lists(atoms: Iterable[Atom], bonds: Iterable[Bond]) -> Graph:
        return Graph(
            atoms={a.id: a for a in atoms},
            bonds={b.id: b for b in bonds},
        )

    def next_atom_id(self) -> int:
        return next_id(self.atoms)

    def next_bond_id(self) -> int:
        return next_id(self.bonds)

    def find_bond(self, i: int, j: int) -> Optional[Bond]:
        """Return the bond joining ``i`` and ``j`` in either direction."""
        pair = (i, j) if i <= j else (j, i)
        for bond in self.bonds.values():
            if bond.pair == pair:
                return bond
        return None

    def neighbours(self) -> Dict[int, list[int]]:
        """Adjacency list: atom id -> sorted ids of bonded atoms."""
        adjacency: Dict[int, set[int]] = {atom_id: set() for atom_id in self.atoms}
        for bond in self.bonds.values():
            if bond.i in adjacency and bond.j in adjacency:
                adjacency[bond.i].add(bond.j)
                adjacency[bond.j].add(bond.i)
        return {atom_id: sorted(ids) for atom_id, ids in adjacency.items()}


def next_id(collection: Dict[int, Any]) -> int:
    """Ids are allocated as max(existing) + 1, starting at 1."""
    return max(collection, default=0) + 1


def bond_violation(graph: Graph, i: int, j: int, ignore_bond: Optional[int] = None) -> Optional[str]:
    """
    Check whether a bond between ``i`` and ``j`` may exist in ``graph``.

    Args:
        graph: Graph the bond would live in.
        i, j: Endpoint atom ids.
        ignore_bond: Id of a bond being edited (it does not count as a duplicate of itself).

    Returns:
        None if the bond is allowed, otherwise a short reason.
    """
    if i == j:
        return "self-loop"
    if i not in graph.atoms or j not in graph.atoms:
        return "dangling endpoint"
    existing = graph.find_bond(i, j)
    if existing is not None and existing.id != ignore_bond:
        return "duplicate pair"
    return None


def sanitize(graph: Graph) -> Graph:
    """
    Copy of ``graph`` without the bonds that break integrity.

    Bonds are checked in ascending id order, so of two bonds joining the same
    pair the lower id survives. Atoms are kept as they are.
    """
    clean = Graph(atoms={atom_id: Atom(a.id, a.x, a.y) for atom_id, a in graph.atoms.items()})
    for bond_id in sorted(graph.bonds):
        bond = graph.bonds[bond_id]
        reason = bond_violation(clean, bond.i, bond.j)
        if reason is not None:
            logger.debug(f"Dropping bond {bond_id} ({bond.i}-{bond.j}): {reason}.")
            continue
        clean.bonds[bond_id] = Bond(id=bond.id, i=bond.i, j=bond.j, k=bond.k)
    return clean


# ------------------------------------------------------------------------------
# Field descriptor table
# ------------------------------------------------------------------------------
@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    label: str
    value_type: type = float
    read_only: bool = False
    step: float = 1.0


FIELD_DESCRIPTORS: Dict[EntityKind, Tuple[FieldDescriptor, ...]] = {
    EntityKind.ATOM: (
        FieldDescriptor(name="id", label="id", value_type=int, read_only=True),
        FieldDescriptor(name="x", label="x", step=0.1),
        FieldDescriptor(name="y", label="y", step=0.1),
    ),
    EntityKind.BOND: (
        FieldDescriptor(name="id", label="id", value_type=int, read_only=True),
        FieldDescriptor(name="i", label="i", value_type=int),
        FieldDescriptor(name="j", label="j", value_type=int),
        FieldDescriptor(name="k", label="k", step=0.001),
    ),
}


def get_field_descriptor(kind: EntityKind, name: str) -> FieldDescriptor:
    for descriptor in FIELD_DESCRIPTORS[kind]:
        if descriptor.name == name:
            return descriptor
    raise KeyError(f"{kind} has no field '{name}'.")


# ------------------------------------------------------------------------------
# Built-in starter network
# ------------------------------------------------------------------------------
_DEFAULT_ATOMS: Tuple[Tuple[int, float, float], ...] = (
    (1, -1.0, 0.0), (2, -2.0, 1.0), (3, -1.0, 2.0), (4, 0.0, 1.0),
    (5, -1.0, 1.0), (6, -2.0, -1.0), (7, -1.0, -2.0), (8, 0.0, -1.0),
    (9, -1.0, -1.0), (10, 1.0, 0.0), (11, 1.0, 2.0), (12, 2.0, 1.0),
    (13, 1.0, 1.0), (14, 1.0, -2.0), (15, 2.0, -1.0), (16, 1.0, -1.0),
)

_DEFAULT_BONDS: Tuple[Tuple[int, int, int, float], ...] = (
    (1, 1, 2, 1.0), (2, 2, 3, 1.0), (3, 3, 4, 1.0), (4, 1, 4, 1.0),
    (5, 1, 5, 0.5), (6, 2, 5, 1.0), (7, 3, 5, 1.0), (8, 4, 5, 1.0),
    (9, 6, 7, 1.0), (10, 7, 8, 1.0), (11, 6, 9, 1.0), (12, 7, 9, 1.0),
    (13, 8, 9, 1.0), (14, 6, 1, 1.0), (15, 1, 8, 1.0), (16, 9, 1, 0.5),
    (17, 11, 12, 1.0), (18, 10, 12, 1.0), (19, 10, 13, 0.3), (20, 11, 13, 1.0),
    (21, 12, 13, 1.0), (22, 14, 15, 1.0), (23, 14, 16, 1.0), (24, 15, 16, 1.0),
    (25, 10, 15, 1.0), (26, 16, 10, 0.3), (27, 11, 4, 1.0), (28, 13, 4, 1.0),
    (29, 4, 10, 1.0), (30, 10, 8, 1.0), (31, 16, 8, 1.0), (32, 8, 14, 1.0),
)


def default_graph() -> Graph:
    """The starter network shown when nothing else is available."""
    return Graph.from_lists(
        (Atom(id=i, x=x, y=y) for i, x, y in _DEFAULT_ATOMS),
        (Bond(id=b, i=i, j=j, k=k) for b, i, j, k in _DEFAULT_BONDS),
    )
