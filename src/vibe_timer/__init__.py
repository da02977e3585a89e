"""Local-first vibe timer."""

__version__ = "0.1.0"
