"""DailyChamp - a markdown daily task journal synced over WebDAV."""

__version__ = "0.1.0"
