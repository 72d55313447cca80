# Third Party
import pytest

# Local
from springnet.model.codec import (
    ExportError, generate, infer_angles, intern_bond_types, parse,
)
from springnet.model.entities import Graph, default_graph


def _section(text, name):
    """Non-empty rows directly below a section header."""
    lines = text.splitlines()
    start = next(n for n, line in enumerate(lines) if line.split("#")[0].strip() == name)
    rows = []
    for line in lines[start + 2:]:
        if not line.strip():
            break
        rows.append(line.split())
    return rows


def _header_count(text, label):
    for line in text.splitlines():
        if line.endswith(" " + label):
            return int(line.split()[0])
    raise AssertionError(f"missing header '{label}'")


#============================================
def test_triangle_header_counts(triangle):
    text = generate(triangle)
    assert _header_count(text, "atoms") == 3
    assert _header_count(text, "bonds") == 3
    assert _header_count(text, "angles") == 3
    assert _header_count(text, "bond types") == 2
    assert _header_count(text, "angle types") == 3
    assert _header_count(text, "atom types") == 1


def test_triangle_sections(triangle):
    text = generate(triangle)
    assert _section(text, "Masses") == [["1", "100000.000000"]]
    atoms = _section(text, "Atoms")
    assert atoms[1] == ["2", "1", "1", "0.000000", "1.000000", "0.000000", "0.000000"]
    assert _section(text, "Bonds") == [["1", "1", "1", "2"], ["2", "1", "2", "3"], ["3", "2", "1", "3"]]
    coeffs = _section(text, "Bond Coeffs")
    assert coeffs[0] == ["1", "1.000000", "1.000000"]
    assert coeffs[1] == ["2", "0.500000", "1.000000"]


def test_box_is_padded(triangle):
    text = generate(triangle)
    assert "-1.000000 2.000000 xlo xhi" in text
    assert "-1.000000 2.000000 ylo yhi" in text
    assert "-0.500000 0.500000 zlo zhi" in text
    assert "0.000000 0.000000 0.000000 xy xz yz" in text


def test_angles_match_degree_sum():
    graph = default_graph()
    degrees = [len(n) for n in graph.neighbours().values()]
    expected = sum(d * (d - 1) // 2 for d in degrees)
    angles = infer_angles(graph)
    assert len(angles) == expected
    assert len(set((a.a, a.centre, a.b) for a in angles)) == expected


def test_angle_rows_and_coefficients(chain):
    text = generate(chain)
    assert _section(text, "Angles") == [["1", "1", "1", "2", "3"]]
    assert _section(text, "Angle Coeffs") == [["1", "10.000000", "180.000000"]]


def test_zero_angles_omits_section(make_graph):
    graph = make_graph([(1, 0.0, 0.0), (2, 1.0, 0.0)], [(1, 1, 2, 1.0)])
    text = generate(graph)
    assert "\nAngles\n" not in text
    assert _header_count(text, "angles") == 0
    assert _header_count(text, "angle types") == 1
    assert _section(text, "Angle Coeffs") == [["1", "10.000000", "120.000000"]]


def test_generate_without_bonds_raises(make_graph):
    with pytest.raises(ExportError):
        generate(make_graph([(1, 0.0, 0.0)], []))
    with pytest.raises(ExportError):
        generate(Graph())


def test_intern_bond_types_first_appearance(chain):
    bonds = list(chain.bonds.values())
    assert intern_bond_types(bonds) == {1.0: 1, 2.0: 2}


#============================================
def test_round_trip_keeps_topology():
    graph = default_graph()
    parsed = parse(generate(graph))
    assert parsed.atoms == graph.atoms
    assert {b.id: (b.i, b.j, b.k) for b in parsed.bonds.values()} == \
        {b.id: (b.i, b.j, b.k) for b in graph.bonds.values()}


def test_parse_tolerates_junk():
    text = "\n".join([
        "LAMMPS data file",
        "2 atoms",
        "",
        "Atoms # full",
        "",
        "1 1 1 0.0 0.5 1.5 0.0",
        "this line is garbage",
        "2 1 1 0.0 2.5 nan 0.0",
        "3 1 1 0.0 3.0 4.0 0.0 0 0 0",
        "",
        "Velocities",
        "",
        "1 9.0 9.0 9.0",
        "",
        "Bonds",
        "",
        "1 1 1 3",
        "2 1 1 1",
        "3 1 1 42",
        "4 2 3 1",
        "",
        "Bond Coeffs",
        "",
        "1 4.5 1.0",
    ])
    graph = parse(text)
    assert sorted(graph.atoms) == [1, 3]
    assert (graph.atoms[1].x, graph.atoms[1].y) == (0.5, 1.5)
    assert list(graph.bonds) == [1]
    assert graph.bonds[1].k == 4.5


def test_parse_atomic_style_by_column_count():
    text = "Atoms\n\n1 1 0.25 0.75 0.0\n\nBonds\n\n1 7 1 1\n"
    graph = parse(text)
    assert (graph.atoms[1].x, graph.atoms[1].y) == (0.25, 0.75)
    assert graph.bonds == {}


def test_parse_missing_coefficient_defaults_to_one():
    text = "Atoms # molecular\n\n1 1 1 0 0 0\n2 1 1 1 0 0\n\nBonds\n\n1 3 1 2\n"
    graph = parse(text)
    assert graph.bonds[1].k == 1.0
    assert graph.atoms[2].x == 1.0


def test_parse_empty_text():
    assert parse("") == Graph()


def test_stiffness_example_types_and_angles(make_graph):
    graph = make_graph(
        [(1, 0.0, 0.0), (2, 1.0, 0.0), (3, 0.0, 1.0)],
        [(1, 1, 2, 2.0), (2, 1, 3, 2.0), (3, 2, 3, 5.0)],
    )
    text = generate(graph)
    assert _header_count(text, "atoms") == 3
    assert _header_count(text, "bonds") == 3
    assert _header_count(text, "angles") == 3
    assert _header_count(text, "bond types") == 2
    assert [row[1] for row in _section(text, "Bonds")] == ["1", "1", "2"]
    assert [row[:2] for row in _section(text, "Bond Coeffs")] == [["1", "2.000000"], ["2", "5.000000"]]
    # Vertex 1 has degree 2 and supplies exactly one angle, 2-1-3 at 90 degrees
    angles = _section(text, "Angles")
    assert [row for row in angles if row[3] == "1"] == [["1", "1", "2", "1", "3"]]
    assert _section(text, "Angle Coeffs")[0] == ["1", "10.000000", "90.000000"]
