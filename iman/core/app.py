import logging
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Config
from .db import dispose_db, init_db
from .plugin_manager import PluginManager
from .task_manager import TaskManager
from .tracker import Tracker

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class ImanApp:
    """Wires config, database, tracker, plugin tasks and the HTTP API together."""

    def __init__(self, config_path: Optional[str] = None, db_url: Optional[str] = None,
                 watch: bool = False, setup_logging: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._shutdown = threading.Event()

        self.config = Config(config_path=config_path, watch=watch)
        self.config.register_change_callback(self.handle_config_change)

        if setup_logging:
            self._setup_logging()

        # Initialize database (before managers so tables exist)
        init_db(self.config.data, db_url=db_url)

        self.tracker = Tracker()
        self.tracker.ensure_profile()
        self.tracker.reload()

        self.plugin_manager = PluginManager()
        self.task_manager = TaskManager(self)
        self.initialize_tasks()

    def _setup_logging(self) -> None:
        """Configure logging to write to both file and stdout"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        level = str(self.config.data["logging"].get("level", "INFO")).upper()
        root_logger.setLevel(getattr(logging, level, logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = self.config.data["logging"].get("file")
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Iman tracker starting...")

    def initialize_tasks(self) -> List[str]:
        """Create and register a task for every enabled plugin that has one"""
        started = []
        for name in self.plugin_manager.task_classes:
            try:
                task = self.plugin_manager.create_task(name, self.config.get_plugin_config(name))
                if task:
                    self.task_manager.register_task(task)
                    started.append(name)
            except Exception as e:
                self.logger.error(f"Error initializing task {name}: {e}")
                self.logger.exception(e)
        return started

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Re-derive state and re-register tasks after a config reload"""
        self.logger.info("Handling config change")
        try:
            self.task_manager.stop()
            self.task_manager = TaskManager(self)
            self.initialize_tasks()
            self.task_manager.schedule_all()
            self.tracker.reload()
        except Exception as e:
            self.logger.error(f"Error handling config change: {e}", exc_info=True)

    def run(self) -> None:
        try:
            self.task_manager.schedule_all()
            from iman.api import run_api_server
            if not run_api_server(self):
                self.logger.info("Running without the API: scheduled tasks only, Ctrl+C to stop")
                self.wait_for_shutdown()
        finally:
            self.stop()

    def wait_for_shutdown(self) -> None:
        """Block until request_shutdown() or Ctrl+C."""
        try:
            while not self._shutdown.wait(1):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def stop(self) -> None:
        self.task_manager.stop()
        self.config.cleanup()
        dispose_db()
