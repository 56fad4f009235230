from .task import CleanupTask


def register(plugin_manager):
    plugin_manager.register_task(CleanupTask)
