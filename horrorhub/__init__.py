# HorrorHub Application
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("horrorhub")
except PackageNotFoundError:
    # Fallback for development
    __version__ = "0.0.0-dev"
