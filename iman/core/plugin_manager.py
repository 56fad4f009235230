import importlib
import pkgutil
from typing import Any, Dict, List, Optional, Type
import logging

from .task import BaseTask


class PluginManager:
    """Discovers iman.plugins.* packages. A plugin registers task classes via register(plugin_manager)."""

    def __init__(self, plugin_package: str = "iman.plugins"):
        self.plugin_package = plugin_package
        self.plugins: List[str] = []
        self.task_classes: Dict[str, Type[BaseTask]] = {}
        self.logger = logging.getLogger(__name__)
        self.discover_plugins()

    def discover_plugins(self) -> None:
        """Discover and register all plugins in the plugin package"""
        package = importlib.import_module(self.plugin_package)
        self.logger.info(f"Discovering plugins in package: {self.plugin_package}")

        for _, name, is_pkg in pkgutil.iter_modules(package.__path__):
            if not is_pkg or name in self.plugins:
                continue
            try:
                module = importlib.import_module(f"{self.plugin_package}.{name}")
                self.plugins.append(name)
                self.logger.debug(f"Found plugin module: {name}")
                if hasattr(module, "register"):
                    module.register(self)
                    self.logger.info(f"Registered tasks from plugin: {name}")
            except Exception as e:
                self.logger.error(f"Error loading plugin {name}: {e}")
                self.logger.exception(e)

    def register_task(self, task_class: Type[BaseTask]) -> None:
        """Register a task class under its plugin name"""
        self.logger.debug(f"Registering task: {task_class.name}")
        self.task_classes[task_class.name] = task_class

    def create_task(self, name: str, config: Dict[str, Any]) -> Optional[BaseTask]:
        """Create a registered task if its plugin is enabled in config"""
        if name not in self.task_classes:
            self.logger.warning(f"Task '{name}' not found")
            return None

        if not config or not config.get("enable", False):
            self.logger.info(f"Task '{name}' disabled (enable: {config.get('enable', False) if config else False})")
            return None

        self.logger.debug(f"Creating task {name} with config: {config}")
        return self.task_classes[name](config)
