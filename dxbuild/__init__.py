"""Build, bundle and serve Dioxus web and desktop applications with cargo."""

__version__ = "0.1.5"

__all__ = ["__version__"]