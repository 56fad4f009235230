from .task import SyncTask


def register(plugin_manager):
    plugin_manager.register_task(SyncTask)
