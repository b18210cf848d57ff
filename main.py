"""
Main application entry point for Infinite Loop Display
"""
import os
import sys

# Disable Qt's automatic DPI scaling for consistent pixel sizes across displays
os.environ["QT_SCALE_FACTOR"] = "1"

import logging
import asyncio
from PyQt6.QtWidgets import QApplication, QSplashScreen
from PyQt6.QtCore import Qt, QtMsgType, qInstallMessageHandler
from PyQt6.QtGui import QPixmap, QPainter, QColor, QFont, QPalette, QIcon
import qasync

from src.utils.file_utils import get_resource_path

APP_NAME = "Infinite Loop Display"
APP_VERSION = "1.0.0"


def create_splash_screen(app: QApplication) -> QSplashScreen:
    """Create a splash screen for app startup."""
    width, height = 400, 250
    pixmap = QPixmap(width, height)
    pixmap.fill(QColor("#141414"))

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)

    # Accent line at top
    painter.fillRect(0, 0, width, 4, QColor("#e11d48"))

    painter.setPen(QColor("#e6e6e6"))
    painter.setFont(QFont("Segoe UI", 22, QFont.Weight.Bold))
    painter.drawText(0, 80, width, 40, Qt.AlignmentFlag.AlignCenter, APP_NAME)

    painter.setPen(QColor("#9ca3af"))
    painter.setFont(QFont("Segoe UI", 12))
    painter.drawText(0, 120, width, 30, Qt.AlignmentFlag.AlignCenter, f"v{app.applicationVersion()}")

    painter.setPen(QColor("#6b7280"))
    painter.setFont(QFont("Segoe UI", 10))
    painter.drawText(0, height - 50, width, 30, Qt.AlignmentFlag.AlignCenter, "Loading...")
    painter.end()

    splash = QSplashScreen(pixmap)
    splash.setWindowFlags(Qt.WindowType.SplashScreen | Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint)
    return splash


def qt_message_handler(mode, context, message):
    """Route Qt messages into logging, dropping known harmless warnings."""
    if "QFont::setPointSize: Point size <= 0" in message:
        return
    if "Could not parse application stylesheet" in message:
        return

    if mode == QtMsgType.QtDebugMsg:
        logging.debug(f"Qt: {message}")
    elif mode == QtMsgType.QtInfoMsg:
        logging.info(f"Qt: {message}")
    elif mode == QtMsgType.QtWarningMsg:
        logging.warning(f"Qt: {message}")
    elif mode == QtMsgType.QtCriticalMsg:
        logging.error(f"Qt: {message}")
    elif mode == QtMsgType.QtFatalMsg:
        logging.critical(f"Qt: {message}")


def setup_logging(db_manager=None):
    """Configure application logging"""
    from src.utils.logging_config import setup_logging as setup_categorized_logging

    logging_manager = setup_categorized_logging(db_manager)
    qInstallMessageHandler(qt_message_handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info(f"{APP_NAME} Starting")
    logger.info("=" * 50)
    return logging_manager


def apply_dark_palette(app: QApplication):
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor("#141414"))
    palette.setColor(QPalette.ColorRole.WindowText, QColor("#e6e6e6"))
    palette.setColor(QPalette.ColorRole.Base, QColor("#161616"))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor("#1b1b1b"))
    palette.setColor(QPalette.ColorRole.ToolTipBase, QColor("#232323"))
    palette.setColor(QPalette.ColorRole.ToolTipText, QColor("#e6e6e6"))
    palette.setColor(QPalette.ColorRole.Text, QColor("#e6e6e6"))
    palette.setColor(QPalette.ColorRole.Button, QColor("#232323"))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor("#e6e6e6"))
    palette.setColor(QPalette.ColorRole.Link, QColor("#e11d48"))
    palette.setColor(QPalette.ColorRole.Highlight, QColor("#e11d48"))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor("#ffffff"))
    app.setPalette(palette)


async def async_main(logging_manager, splash: QSplashScreen = None):
    """Async main function with Qt event loop integration"""
    logger = logging.getLogger(__name__)

    def status(text: str):
        if splash:
            splash.showMessage(text, Qt.AlignmentFlag.AlignBottom | Qt.AlignmentFlag.AlignHCenter, QColor("#6b7280"))

    try:
        from src.core.context import CoreContext
        from src.ui.main_window import MainWindow
        from src.utils.file_utils import apply_windows_dark_mode

        app = QApplication.instance()
        apply_dark_palette(app)

        icon_path = get_resource_path('resources', 'icon.ico')
        if icon_path.exists():
            app.setWindowIcon(QIcon(str(icon_path)))

        status("Initializing...")
        logger.info("Initializing core context...")
        core = CoreContext()
        logging_manager.attach_database(core.db)
        app._core_context = core

        status("Restoring session...")
        user = core.auth.restore_session()
        if user is not None:
            logger.info(f"Restored session for {user.email}")

        status("Creating UI...")
        main_window = MainWindow(core)
        apply_windows_dark_mode(main_window)

        if splash:
            splash.finish(main_window)
        main_window.show()
        logger.info("Application started successfully")

        # Keep reference to prevent garbage collection
        app._main_window = main_window

    except Exception as e:
        logger.exception(f"Fatal error during startup: {e}")
        sys.exit(1)


def main():
    """Main application entry point"""
    logging_manager = setup_logging()
    logger = logging.getLogger(__name__)

    try:
        app = QApplication(sys.argv)
        app.setApplicationName(APP_NAME)
        app.setApplicationVersion(APP_VERSION)
        app.setOrganizationName("InfiniteLoopDisplay")

        splash = create_splash_screen(app)
        splash.show()
        app.processEvents()

        loop = qasync.QEventLoop(app)
        asyncio.set_event_loop(loop)

        logger.info("Starting application with asyncio event loop integration")

        app_close_event = asyncio.Event()
        app.aboutToQuit.connect(app_close_event.set)

        with loop:
            loop.run_until_complete(async_main(logging_manager, splash))
            loop.run_until_complete(app_close_event.wait())
            if hasattr(app, "_core_context"):
                loop.run_until_complete(app._core_context.http_client.close_async_session())

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        logger.info("Shutting down...")
        if 'app' in locals() and hasattr(app, '_core_context'):
            app._core_context.close()
        logger.info("Application closed")


if __name__ == "__main__":
    main()
