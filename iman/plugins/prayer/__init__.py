from .task import PrayerTimesTask


def register(plugin_manager):
    plugin_manager.register_task(PrayerTimesTask)
