"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the SessionContext and the GraphStore (Model).
2. Instantiates the InteractionEngine (Controller).
3. Instantiates the Main Window (View) and hands it both.
4. Prevents circular import errors by being the orchestrator.
"""
import logging
import sys
from typing import List, Optional, Union

from PySide6.QtWidgets import QApplication, QMessageBox

from springnet.config import SESSION_PATH, EditorConfig
from springnet.controller.interaction import InteractionEngine
from springnet.logging_config import setup_logging
from springnet.model.io import IOManager
from springnet.model.session import SessionContext
from springnet.model.store import GraphStore
from springnet.view.main_window import MainWindow

logger = logging.getLogger(__name__)


def main(
    open_path: Optional[str] = None,
    use_session: bool = True,
    log_level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    argv: Optional[List[str]] = None,
) -> int:
    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=log_level, log_file=log_file)

    # 2. Create the Qt Application
    app = QApplication(argv if argv is not None else sys.argv)
    app.setOrganizationName("springnet")
    app.setApplicationName("Spring Network Editor")

    # 3. Load user preferences (QSettings picks up the names set above)
    config = EditorConfig.from_settings()

    # 4. Initialize the Data Model
    session = SessionContext(storage_path=SESSION_PATH if use_session else None)
    store = GraphStore(session=session, history_limit=config.history_limit)

    # 5. Initialize the Controller and the Main Window
    engine = InteractionEngine(store, session=session, config=config)
    window = MainWindow(store, engine, config)

    if open_path:
        try:
            if open_path.endswith(".h5"):
                store.replace_graph(IOManager.load_project(open_path))
                window.filepath = open_path
            else:
                store.load_from_string(IOManager.read_text_file(open_path))
            store.clear_history()
            window.set_modified(False)
            window.update_window_title()
        except (OSError, ValueError) as e:
            logger.error(f"Could not open '{open_path}': {e}")
            QMessageBox.critical(window, "Error", f"Could not open file:\n{e}")

    window.show()

    # 6. Start Event Loop
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
