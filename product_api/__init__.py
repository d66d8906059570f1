"""Product catalogue API: FastAPI + MongoDB."""

__version__ = "1.0.0"
