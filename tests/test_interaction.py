# Third Party
import pytest

# Local
from springnet.config import EditorConfig
from springnet.controller.interaction import InteractionEngine, InteractionState
from springnet.model.session import SessionContext
from springnet.model.store import GraphStore


@pytest.fixture
def engine(store):
    return InteractionEngine(store)


@pytest.fixture
def spread(make_graph):
    """Atom 1 on its own, atoms 2 and 3 bonded to each other further right."""
    graph = make_graph(
        [(1, 0.0, 0.0), (2, 2.0, 0.0), (3, 2.0, 1.0)],
        [(1, 2, 3, 1.5), (2, 1, 2, 1.0)],
    )
    store = GraphStore(session=SessionContext(), initial=graph)
    return InteractionEngine(store)


def _canvas(engine, x, y):
    return engine.viewport.to_canvas(x, y)


def click(engine, x, y, modifier=False):
    px, py = _canvas(engine, x, y)
    engine.pointer_down(px, py, modifier=modifier)
    engine.pointer_up(px, py)


def drag(engine, start, end, steps=4, modifier=False):
    x0, y0 = _canvas(engine, *start)
    x1, y1 = _canvas(engine, *end)
    engine.pointer_down(x0, y0, modifier=modifier)
    for n in range(1, steps + 1):
        t = n / steps
        engine.pointer_move(x0 + (x1 - x0) * t, y0 + (y1 - y0) * t)
    engine.pointer_up(x1, y1)


#============================================
def test_click_selects_atom_without_commit(engine):
    click(engine, 0.0, 0.0)
    assert engine.selection == {1}
    assert engine.state == InteractionState.IDLE
    assert engine.store.undo_depth == 0


def test_click_empty_clears_selection(engine):
    click(engine, 0.0, 0.0)
    click(engine, 3.0, 3.0)
    assert engine.selection == frozenset()


def test_marquee_then_click(spread):
    drag(spread, (1.5, -0.5), (2.5, 1.5))
    assert spread.selection == {2, 3}
    assert spread.store.undo_depth == 0
    assert spread.marquee_rect() is None
    click(spread, 0.0, 0.0)
    assert spread.selection == {1}


def test_marquee_rect_while_drawing(spread):
    x0, y0 = _canvas(spread, 1.5, -0.5)
    x1, y1 = _canvas(spread, 2.5, 1.5)
    spread.pointer_down(x0, y0)
    spread.pointer_move(x1, y1)
    assert spread.state == InteractionState.MARQUEE_SELECTING
    assert spread.marquee_rect() == pytest.approx((1.5, 2.5, -0.5, 1.5))


def test_group_drag_is_one_commit(spread):
    drag(spread, (1.5, -0.5), (2.5, 1.5))
    drag(spread, (2.0, 0.0), (3.0, 0.0), steps=10)
    graph = spread.store.graph
    assert (graph.atoms[2].x, graph.atoms[2].y) == pytest.approx((3.0, 0.0))
    assert (graph.atoms[3].x, graph.atoms[3].y) == pytest.approx((3.0, 1.0))
    assert graph.atoms[1].x == 0.0
    assert spread.store.undo_depth == 1


def test_drag_shows_pending_positions_before_commit(engine):
    x0, y0 = _canvas(engine, 0.0, 0.0)
    x1, y1 = _canvas(engine, -1.0, -1.0)
    engine.pointer_down(x0, y0)
    engine.pointer_move(x1, y1)
    assert engine.state == InteractionState.ATOM_DRAGGING
    assert engine.display_positions()[1] == pytest.approx((-1.0, -1.0))
    assert engine.store.graph.atoms[1].x == 0.0


def test_cancelled_drag_commits_nothing(engine):
    x0, y0 = _canvas(engine, 0.0, 0.0)
    engine.pointer_down(x0, y0)
    engine.pointer_move(x0 + 40, y0 + 40)
    engine.pointer_cancel()
    assert engine.state == InteractionState.IDLE
    assert engine.store.undo_depth == 0
    assert engine.display_positions()[1] == (0.0, 0.0)


def test_move_within_epsilon_is_a_click(engine):
    x0, y0 = _canvas(engine, 0.0, 0.0)
    engine.pointer_down(x0, y0)
    engine.pointer_move(x0 + 2, y0)
    engine.pointer_up(x0 + 2, y0)
    assert engine.store.undo_depth == 0
    assert engine.selection == {1}


def test_release_where_drag_began_records_nothing(engine):
    x0, y0 = _canvas(engine, 0.0, 0.0)
    engine.pointer_down(x0, y0)
    engine.pointer_move(x0 + 30, y0)
    engine.pointer_move(x0, y0)
    engine.pointer_up(x0, y0)
    assert engine.store.undo_depth == 0


def test_move_without_button_is_ignored(engine):
    x0, y0 = _canvas(engine, 0.0, 0.0)
    engine.pointer_down(x0, y0)
    engine.pointer_move(x0 + 40, y0, primary_held=False)
    engine.pointer_up(x0 + 40, y0)
    assert engine.store.undo_depth == 0


def test_snap_to_grid_while_dragging(engine):
    engine.set_grid_snap(True, 0.5)
    drag(engine, (0.0, 0.0), (0.6, 0.2))
    atom = engine.store.graph.atoms[1]
    assert (atom.x, atom.y) == pytest.approx((0.5, 0.0))


def test_modifier_click_toggles(spread):
    click(spread, 0.0, 0.0)
    click(spread, 2.0, 0.0, modifier=True)
    assert spread.selection == {1, 2}
    click(spread, 0.0, 0.0, modifier=True)
    assert spread.selection == {2}
    # Modifier click on empty space keeps the selection
    click(spread, 5.0, 5.0, modifier=True)
    assert spread.selection == {2}


#============================================
def test_copy_paste_duplicates_fragment(spread):
    drag(spread, (1.5, -0.5), (2.5, 1.5))
    assert spread.key_press("C", ctrl=True)
    assert spread.key_press("V", ctrl=True)
    graph = spread.store.graph
    assert spread.selection == {4, 5}
    assert graph.atoms[4].x == pytest.approx(2.06)
    assert graph.atoms[5].y == pytest.approx(1.06)
    assert graph.bonds[3].pair == (4, 5)
    assert graph.bonds[3].k == 1.5
    assert len(graph.bonds) == 3
    assert spread.store.undo_depth == 1


def test_duplicate_with_empty_clipboard_uses_selection(spread):
    click(spread, 0.0, 0.0)
    assert spread.key_press("D", ctrl=True)
    assert spread.selection == {4}
    assert len(spread.store.graph.bonds) == 2


def test_paste_with_nothing_does_nothing(engine):
    assert engine.paste() == []
    assert engine.store.undo_depth == 0


def test_delete_selection(engine):
    click(engine, 0.0, 0.0)
    assert engine.key_press("Delete")
    assert 1 not in engine.store.graph.atoms
    assert list(engine.store.graph.bonds) == [2]
    assert engine.selection == frozenset()
    assert engine.store.undo_depth == 1
    assert not engine.key_press("Delete")


def test_undo_redo_keys(engine):
    click(engine, 0.0, 0.0)
    engine.key_press("Delete")
    assert engine.key_press("Z", ctrl=True)
    assert 1 in engine.store.graph.atoms
    assert engine.key_press("Z", ctrl=True, shift=True)
    assert 1 not in engine.store.graph.atoms
    engine.key_press("Z", ctrl=True)
    assert engine.key_press("Y", ctrl=True)
    assert 1 not in engine.store.graph.atoms


def test_selection_drops_removed_atoms(spread):
    click(spread, 0.0, 0.0)
    spread.store.remove_atom(1)
    assert spread.selection == frozenset()


#============================================
def test_inline_edit_commits_valid_value(engine):
    px, py = _canvas(engine, 0.5, 0.0)
    assert engine.double_click(px, py)
    assert engine.state == InteractionState.INLINE_EDITING
    assert engine.editor.bond_id == 1
    assert engine.editor.text == "1"
    engine.set_edit_text("2.5")
    assert engine.key_press("Return")
    assert engine.state == InteractionState.IDLE
    assert engine.store.graph.bonds[1].k == 2.5
    assert engine.store.undo_depth == 1


@pytest.mark.parametrize("k", [1.23456789, 0.1, 2.0 / 3.0])
def test_unedited_inline_commit_keeps_coefficient(engine, k):
    engine.store.update_bond_coefficient(1, k)
    depth = engine.store.undo_depth
    px, py = _canvas(engine, 0.5, 0.0)
    engine.double_click(px, py)
    assert engine.key_press("Return")
    assert engine.store.graph.bonds[1].k == k
    assert engine.store.undo_depth == depth


@pytest.mark.parametrize("text", ["", "-", "abc", "inf", "nan"])
def test_inline_edit_rejects_invalid(engine, text):
    px, py = _canvas(engine, 0.5, 0.0)
    engine.double_click(px, py)
    engine.set_edit_text(text)
    assert engine.commit_edit() is False
    assert engine.state == InteractionState.IDLE
    assert engine.store.graph.bonds[1].k == 1.0
    assert engine.store.undo_depth == 0


def test_inline_edit_escape_discards(engine):
    px, py = _canvas(engine, 0.5, 0.0)
    engine.double_click(px, py)
    engine.set_edit_text("7")
    assert engine.key_press("Escape")
    assert engine.editor is None
    assert engine.store.undo_depth == 0


def test_pointer_down_commits_open_editor(engine):
    px, py = _canvas(engine, 0.5, 0.0)
    engine.double_click(px, py)
    engine.set_edit_text("3")
    click(engine, 4.0, 4.0)
    assert engine.store.graph.bonds[1].k == 3.0


def test_double_click_on_empty_space(engine):
    px, py = _canvas(engine, 4.0, 4.0)
    assert engine.double_click(px, py) is False
    assert engine.state == InteractionState.IDLE


#============================================
def test_zoom_updates_session_and_hit_radius(engine):
    radius = engine.viewport.hit_radius
    engine.set_zoom_percent(200)
    assert engine.session.zoom_percent == 200
    assert engine.viewport.hit_radius == pytest.approx(radius / 2)
    engine.set_zoom_percent(1)
    assert engine.viewport.zoom_percent == 10


def test_config_paste_offset(spread):
    engine = InteractionEngine(spread.store, config=EditorConfig(paste_offset=1.0))
    engine.set_selection([1])
    engine.paste()
    assert engine.store.graph.atoms[4].x == pytest.approx(1.0)


def test_restores_single_selection_from_session(store):
    store.session.selected = 2
    engine = InteractionEngine(store)
    assert engine.selection == {2}
