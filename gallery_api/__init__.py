"""Event photo gallery API with best-effort git auto-save of the uploads folder."""

__version__ = "0.1.0"
