"""Keep a superproject and its submodules on intentional commits."""

__version__ = "0.1.0"
