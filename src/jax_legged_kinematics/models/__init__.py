"""Reference robot models assembled with the tree builder."""

from .quadruped import load_quadruped

__all__ = ["load_quadruped"]
