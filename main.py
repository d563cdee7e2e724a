"""
EyeBreak — timed eye breaks from the system tray.
Entry point for the application.
"""

import faulthandler
import logging
import sys
from pathlib import Path

faulthandler.enable()

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parent))

from PySide6.QtWidgets import QApplication

from src.data.database import Database
from src.data.repository import Repository
from src.services.break_scheduler import WorkBreakScheduler
from src.services.timer_driver import TimerDriver
from src.ui.tray_app import TrayApp


def setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("eye_break.log", encoding="utf-8"),
        ],
    )


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting EyeBreak...")

    app = QApplication(sys.argv)
    app.setApplicationName("EyeBreak")
    app.setOrganizationName("EyeBreak")
    # Tray-only app: closing a notification must not end the process
    app.setQuitOnLastWindowClosed(False)

    db = Database()
    db.connect()
    repo = Repository(db.conn)

    scheduler = WorkBreakScheduler(store=repo)
    driver = TimerDriver(scheduler)
    tray = TrayApp(scheduler, driver)
    driver.start()

    logger.info("Application started.")
    code = app.exec()
    db.close()
    sys.exit(code)


if __name__ == "__main__":
    main()


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The entry point. Sets up logging, opens the settings database, builds
#   the scheduler, the Qt timer driver and the tray icon, then hands control
#   to the Qt event loop.
#
# Key points:
#   - Construction order matters: the driver wires itself into the scheduler
#     (event sink, deferred restarts) before the tray app subscribes to it,
#     and nothing ticks until driver.start().
#   - app.exec(): every tick, menu click and notification is processed
#     inside this loop; it is the single writer for scheduler state.
