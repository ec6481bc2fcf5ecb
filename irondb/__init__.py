"""IronDB Studio backend: auth, SQL gateway and background jobs."""

__version__ = "0.1.0"
