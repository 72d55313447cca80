# Third Party
import pytest
from PySide6.QtCore import QCoreApplication

# Local
from springnet.model.entities import Atom, Bond, Graph
from springnet.model.session import SessionContext
from springnet.model.store import GraphStore


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    """Signals and QSettings need a core application; no window is ever shown."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    app.setOrganizationName("springnet-tests")
    app.setApplicationName("springnet-tests")
    return app


#============================================
def _make_graph(atoms, bonds):
    """atoms: (id, x, y) tuples; bonds: (id, i, j, k) tuples."""
    return Graph.from_lists(
        (Atom(id=i, x=x, y=y) for i, x, y in atoms),
        (Bond(id=b, i=i, j=j, k=k) for b, i, j, k in bonds),
    )


@pytest.fixture
def make_graph():
    return _make_graph


@pytest.fixture
def triangle():
    # Three atoms, three bonds, two distinct stiffness values
    return _make_graph(
        [(1, 0.0, 0.0), (2, 1.0, 0.0), (3, 0.0, 1.0)],
        [(1, 1, 2, 1.0), (2, 2, 3, 1.0), (3, 1, 3, 0.5)],
    )


@pytest.fixture
def chain():
    return _make_graph(
        [(1, 0.0, 0.0), (2, 1.0, 0.0), (3, 2.0, 0.0)],
        [(1, 1, 2, 1.0), (2, 2, 3, 2.0)],
    )


@pytest.fixture
def store(triangle):
    return GraphStore(session=SessionContext(), initial=triangle)
