# pzem_monitor/errors.py


class StorageError(Exception):
    """The measurement store could not complete a read or write."""
