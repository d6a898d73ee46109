"""nmcleaner - find node_modules directories and send them to the trash."""

__version__ = "0.1.0"
