"""
Lie-group helpers used by the kinematics engine.

- so3: rotation matrices, quaternions, axis-angle and the log map
- se3: homogeneous poses and the motion-vector adjoint
"""

from . import so3
from . import se3

__all__ = [
    "so3",
    "se3",
]
