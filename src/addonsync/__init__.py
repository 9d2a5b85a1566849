"""AddonSync - addon manifest synchronization and update-check engine."""

__version__ = "0.1.0"
