"""
Data File Codec
===============
Serializes the network to a LAMMPS-style data file and reads it back.

Why is this file needed?
------------------------
1. Export: The generated text is the only thing the simulation engine sees.
   Angles are not stored in the model; they are inferred here from bond
   adjacency every time the file is generated.
2. Import: Any data file (ours or hand written) can be loaded. Parsing is
   tolerant: unknown or malformed lines are skipped, never raised.

Note: parse(generate(G)) keeps atom ids, positions and every bond's endpoints
and stiffness. Masses, angles and angle coefficients are regenerated on export,
so the text itself is not guaranteed to be byte-identical after a round trip.
"""
from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
import logging
from math import isfinite
from typing import Dict, List, Optional, Tuple

from springnet.model.entities import Atom, Bond, Graph, bond_violation
from springnet.model.geometry_utils import (
    angle_theta_degrees, distance, padded_bounds, points_array
)

logger = logging.getLogger(__name__)

# Export constants
BOX_PADDING: float = 1.0
Z_HALF_EXTENT: float = 0.5
DEFAULT_MASS: float = 100000.0
ANGLE_PLACEHOLDER_K: float = 10.0
PLACEHOLDER_THETA0: float = 120.0
DEFAULT_PARSED_K: float = 1.0

# Sections we write, in order
MASSES = "Masses"
ATOMS = "Atoms"
BONDS = "Bonds"
ANGLES = "Angles"
BOND_COEFFS = "Bond Coeffs"
ANGLE_COEFFS = "Angle Coeffs"

# Every header a data file may contain. Rows below a header we do not use are
# still consumed, so they never leak into the previous section.
KNOWN_SECTIONS: Tuple[str, ...] = (
    MASSES, ATOMS, BONDS, ANGLES, BOND_COEFFS, ANGLE_COEFFS,
    "Velocities", "Ellipsoids", "Lines", "Triangles", "Bodies",
    "Dihedrals", "Impropers",
    "Pair Coeffs", "PairIJ Coeffs", "Dihedral Coeffs", "Improper Coeffs",
    "BondBond Coeffs", "BondAngle Coeffs", "MiddleBondTorsion Coeffs",
    "EndBondTorsion Coeffs", "AngleTorsion Coeffs", "AngleAngleTorsion Coeffs",
    "BondBond13 Coeffs", "AngleAngle Coeffs",
)

# Atom style -> (column of x, column of y)
ATOM_STYLE_COLUMNS: Dict[str, Tuple[int, int]] = {
    "full": (4, 5),
    "molecular": (3, 4),
    "bond": (3, 4),
    "angle": (3, 4),
    "atomic": (2, 3),
}

# Column count (with or without 3 image flags) -> style
_COLUMN_COUNT_STYLE: Dict[int, str] = {
    7: "full", 10: "full",
    6: "molecular", 9: "molecular",
    5: "atomic", 8: "atomic",
}


class ExportError(ValueError):
    """The graph cannot be written as a data file."""


@dataclass(frozen=True)
class AngleInstance:
    """An inferred angle a-centre-b. Ids are atom ids."""
    a: int
    centre: int
    b: int
    theta0: float


# ------------------------------------------------------------------------------
# Export
# ------------------------------------------------------------------------------
def intern_bond_types(bonds: List[Bond]) -> Dict[float, int]:
    """Map each distinct stiffness to a dense 1-based type id, in order of first appearance."""
    types: Dict[float, int] = {}
    for bond in bonds:
        if bond.k not in types:
            types[bond.k] = len(types) + 1
    return types


def infer_angles(graph: Graph) -> List[AngleInstance]:
    """
    One angle per unordered pair of distinct neighbours, for every vertex.

    Vertices are visited in ascending id order and neighbour pairs in ascending
    order, so the result is deterministic. The total count is sum(C(deg(v), 2)).
    """
    adjacency = graph.neighbours()
    angles: List[AngleInstance] = []
    for centre_id in sorted(adjacency):
        centre = graph.atoms[centre_id]
        for a_id, b_id in combinations(adjacency[centre_id], 2):
            theta0 = angle_theta_degrees(graph.atoms[a_id], centre, graph.atoms[b_id])
            angles.append(AngleInstance(a=a_id, centre=centre_id, b=b_id, theta0=theta0))
    return angles


def bounding_box(graph: Graph) -> Tuple[float, float, float, float]:
    """Atom bounding box expanded by BOX_PADDING: (xlo, xhi, ylo, yhi)."""
    return padded_bounds(points_array(graph.atoms.values()), BOX_PADDING)


def _f(value: float) -> str:
    return f"{value:.6f}"


def generate(graph: Graph) -> str:
    """
    Write ``graph`` as a data file.

    Raises:
        ExportError: If the graph has no bonds.
    """
    if not graph.bonds:
        raise ExportError("Cannot export a network without bonds.")

    atoms = [graph.atoms[i] for i in sorted(graph.atoms)]
    bonds = [graph.bonds[i] for i in sorted(graph.bonds)]
    for bond in bonds:
        if bond.i not in graph.atoms or bond.j not in graph.atoms:
            raise ExportError(f"Bond {bond.id} references a missing atom.")

    bond_types = intern_bond_types(bonds)
    angles = infer_angles(graph)
    xlo, xhi, ylo, yhi = bounding_box(graph)

    lines: List[str] = [
        f"{len(atoms)} atoms",
        f"{len(bonds)} bonds",
        f"{len(angles)} angles",
        "1 atom types",
        f"{len(bond_types)} bond types",
        f"{max(len(angles), 1)} angle types",
        "",
        f"{_f(xlo)} {_f(xhi)} xlo xhi",
        f"{_f(ylo)} {_f(yhi)} ylo yhi",
        f"{_f(-Z_HALF_EXTENT)} {_f(Z_HALF_EXTENT)} zlo zhi",
        f"{_f(0.0)} {_f(0.0)} {_f(0.0)} xy xz yz",
        "",
        MASSES,
        "",
        f"1 {_f(DEFAULT_MASS)}",
        "",
        f"{ATOMS} # full",
        "",
    ]
    for atom in atoms:
        lines.append(f"{atom.id} 1 1 {_f(0.0)} {_f(atom.x)} {_f(atom.y)} {_f(0.0)}")

    lines += ["", BONDS, ""]
    for bond in bonds:
        lines.append(f"{bond.id} {bond_types[bond.k]} {bond.i} {bond.j}")

    # Zero angles: LAMMPS rejects an empty section, so leave it out entirely
    if angles:
        lines += ["", ANGLES, ""]
        for n, angle in enumerate(angles, start=1):
            # Each inferred angle is its own type
            lines.append(f"{n} {n} {angle.a} {angle.centre} {angle.b}")

    lines += ["", BOND_COEFFS, ""]
    for k_value, type_id in bond_types.items():
        sample = next(b for b in bonds if b.k == k_value)
        r0 = distance(graph.atoms[sample.i], graph.atoms[sample.j])
        lines.append(f"{type_id} {_f(k_value)} {_f(r0)}")

    lines += ["", ANGLE_COEFFS, ""]
    if angles:
        for n, angle in enumerate(angles, start=1):
            lines.append(f"{n} {_f(ANGLE_PLACEHOLDER_K)} {_f(angle.theta0)}")
    else:
        lines.append(f"1 {_f(ANGLE_PLACEHOLDER_K)} {_f(PLACEHOLDER_THETA0)}")

    lines.append("")
    logger.debug(
        f"Generated data file: {len(atoms)} atoms, {len(bonds)} bonds, "
        f"{len(angles)} angles, {len(bond_types)} bond types."
    )
    return "\n".join(lines)


# ------------------------------------------------------------------------------
# Import
# ------------------------------------------------------------------------------
def _match_header(line: str) -> Optional[Tuple[str, str]]:
    """Return (section, comment) if ``line`` is a section header."""
    body, _, comment = line.partition("#")
    name = " ".join(body.split())
    if name in KNOWN_SECTIONS:
        return name, comment.strip()
    return None


def _numbers(line: str) -> Optional[List[float]]:
    """Whitespace-delimited numeric row (comments stripped), or None."""
    body = line.split("#", 1)[0].split()
    if not body:
        return None
    try:
        return [float(token) for token in body]
    except ValueError:
        return None


def _is_integral(value: float) -> bool:
    return isfinite(value) and value == int(value)


def _split_sections(text: str) -> Dict[str, Tuple[str, List[List[float]]]]:
    """Group numeric rows under the header they follow. The first occurrence of a header wins."""
    sections: Dict[str, Tuple[str, List[List[float]]]] = {}
    current: Optional[List[List[float]]] = None
    for raw in text.splitlines():
        header = _match_header(raw)
        if header is not None:
            name, comment = header
            if name in sections:
                current = None
                logger.debug(f"Ignoring repeated section '{name}'.")
            else:
                current = []
                sections[name] = (comment, current)
            continue
        if current is None:
            continue
        row = _numbers(raw)
        if row is not None:
            current.append(row)
    return sections


def _atom_columns(style_hint: str, row: List[float]) -> Optional[Tuple[int, int]]:
    style = style_hint.split()[0].lower() if style_hint else ""
    if style in ATOM_STYLE_COLUMNS:
        return ATOM_STYLE_COLUMNS[style]
    inferred = _COLUMN_COUNT_STYLE.get(len(row))
    if inferred is None:
        return None
    return ATOM_STYLE_COLUMNS[inferred]


def parse(text: str) -> Graph:
    """
    Recover atoms and bonds from a data file.

    Bond stiffness is looked up through the bond type in 'Bond Coeffs'
    (defaulting to 1 when the type has no coefficient row). Bonds that would
    break graph integrity (missing endpoint, self-loop, duplicate pair) and
    repeated ids are dropped.
    """
    sections = _split_sections(text)
    graph = Graph()

    style_hint, atom_rows = sections.get(ATOMS, ("", []))
    for row in atom_rows:
        columns = _atom_columns(style_hint, row)
        if columns is None:
            logger.debug(f"Skipping atom row with {len(row)} columns.")
            continue
        x_col, y_col = columns
        if len(row) <= y_col or not _is_integral(row[0]):
            continue
        if not (isfinite(row[x_col]) and isfinite(row[y_col])):
            continue
        atom_id = int(row[0])
        if atom_id <= 0 or atom_id in graph.atoms:
            logger.debug(f"Skipping invalid or repeated atom id {atom_id}.")
            continue
        graph.atoms[atom_id] = Atom(id=atom_id, x=row[x_col], y=row[y_col])

    coefficients: Dict[int, float] = {}
    for row in sections.get(BOND_COEFFS, ("", []))[1]:
        if len(row) >= 2 and _is_integral(row[0]) and isfinite(row[1]):
            coefficients.setdefault(int(row[0]), row[1])

    for row in sections.get(BONDS, ("", []))[1]:
        if len(row) < 4 or not all(_is_integral(v) for v in row[:4]):
            continue
        bond_id, bond_type, i, j = (int(v) for v in row[:4])
        if bond_id in graph.bonds:
            logger.debug(f"Skipping repeated bond id {bond_id}.")
            continue
        reason = bond_violation(graph, i, j)
        if reason is not None:
            logger.debug(f"Skipping bond {bond_id} ({i}-{j}): {reason}.")
            continue
        k = coefficients.get(bond_type, DEFAULT_PARSED_K)
        graph.bonds[bond_id] = Bond(id=bond_id, i=i, j=j, k=k)

    logger.debug(f"Parsed data file: {len(graph.atoms)} atoms, {len(graph.bonds)} bonds.")
    return graph
