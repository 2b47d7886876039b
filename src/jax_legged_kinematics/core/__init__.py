"""Core data structures: the kinematic tree and the robot configuration.

Both are immutable JAX PyTrees, safe to share between threads and to pass
straight into jitted functions.
"""

from .robot_model import JointType, RobotModel, motion_subspace, motion_transform
from .builder import KinematicTreeBuilder
from .configuration import Configuration, base_pose_from, check_configuration

__all__ = [
    "JointType",
    "RobotModel",
    "motion_subspace",
    "motion_transform",
    "KinematicTreeBuilder",
    "Configuration",
    "base_pose_from",
    "check_configuration",
]
