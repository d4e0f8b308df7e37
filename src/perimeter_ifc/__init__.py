"""Building model → IFC4 STEP export."""

__version__ = "0.3.0"
