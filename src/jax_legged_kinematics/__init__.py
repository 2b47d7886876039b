"""
JAX Legged Kinematics: whole-body kinematics for floating-base legged robots.

Frame poses, velocities, accelerations, geometric Jacobians and numerical
inverse kinematics over an immutable kinematic tree, all written with
JIT-compilable JAX primitives.
"""

import jax
jax.config.update("jax_enable_x64", True)

from . import transforms
from . import core
from . import models
from .core import Configuration, JointType, KinematicTreeBuilder, RobotModel
from .errors import (
    DimensionMismatch,
    KinematicsError,
    MaxIterationsExceeded,
    SingularConfiguration,
    UnknownFrame,
    UnknownJoint,
    UnreachableTarget,
)
from .forward_kinematics import (
    compute_acceleration,
    compute_com_rate,
    compute_pose,
    compute_velocity,
)
from .jacobian import (
    compute_jacobian,
    compute_jd_qd,
    get_fixed_base_jacobian,
    get_floating_base_jacobian,
)
from .inverse_kinematics import IKOptions, IKResult, IKStatus, InverseKinematicsSolver

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "models",
    "Configuration",
    "JointType",
    "KinematicTreeBuilder",
    "RobotModel",
    "DimensionMismatch",
    "KinematicsError",
    "MaxIterationsExceeded",
    "SingularConfiguration",
    "UnknownFrame",
    "UnknownJoint",
    "UnreachableTarget",
    "compute_acceleration",
    "compute_com_rate",
    "compute_pose",
    "compute_velocity",
    "compute_jacobian",
    "compute_jd_qd",
    "get_fixed_base_jacobian",
    "get_floating_base_jacobian",
    "IKOptions",
    "IKResult",
    "IKStatus",
    "InverseKinematicsSolver",
]
