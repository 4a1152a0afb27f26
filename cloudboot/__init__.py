"""Read first-boot metadata and user-data from cloud datasources and apply units."""

__version__ = "0.1.0"