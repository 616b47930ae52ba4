class GridCityError(Exception):
    """Base class for errors raised by the simulation core."""


class PersistenceError(GridCityError):
    """The durable store could not be written or read."""
