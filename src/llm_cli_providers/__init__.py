"""Command-line AI assistants behind one provider contract."""

__version__ = "0.1.0"
