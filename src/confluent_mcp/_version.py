__all__ = ["__version__", "__version_tuple__", "version", "version_tuple"]

version = "0.1.0"
__version__ = version

version_tuple = (0, 1, 0)
__version_tuple__ = version_tuple
