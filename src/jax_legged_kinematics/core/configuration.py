"""Instantaneous whole-body state passed into every kinematics query."""

from typing import Optional

import jax.numpy as jnp
from jax import Array
from flax import struct

from ..errors import DimensionMismatch
from ..transforms import se3
from .robot_model import RobotModel


@struct.dataclass
class Configuration:
    """Immutable robot state: floating-base pose and motion plus joint vectors.

    Base velocity and acceleration are [linear, angular] 6-vectors in the
    world frame; the linear part refers to the base origin.

    Attributes:
        base_pose: (4, 4) world pose of the floating base.
        base_velocity: (6,) base twist.
        base_acceleration: (6,) time derivative of the base twist.
        joint_position: (num_dof,) joint positions.
        joint_velocity: (num_dof,) joint velocities.
        joint_acceleration: (num_dof,) joint accelerations.
    """
    base_pose: Array
    base_velocity: Array
    base_acceleration: Array
    joint_position: Array
    joint_velocity: Array
    joint_acceleration: Array

    @classmethod
    def create(cls, joint_position,
               joint_velocity=None,
               joint_acceleration=None,
               base_pose=None,
               base_velocity=None,
               base_acceleration=None) -> "Configuration":
        """Build a configuration; omitted parts are identity or zero."""
        q = jnp.asarray(joint_position, dtype=jnp.float64)

        def _or_zeros(value, shape):
            if value is None:
                return jnp.zeros(shape, dtype=jnp.float64)
            return jnp.asarray(value, dtype=jnp.float64)

        return cls(
            base_pose=jnp.eye(4) if base_pose is None else jnp.asarray(base_pose, dtype=jnp.float64),
            base_velocity=_or_zeros(base_velocity, 6),
            base_acceleration=_or_zeros(base_acceleration, 6),
            joint_position=q,
            joint_velocity=_or_zeros(joint_velocity, q.shape),
            joint_acceleration=_or_zeros(joint_acceleration, q.shape),
        )

    @classmethod
    def zeros(cls, num_dof: int) -> "Configuration":
        """Robot at the world origin with every joint at zero and at rest."""
        return cls.create(jnp.zeros(num_dof))


def base_pose_from(position, quaternion: Optional[Array] = None) -> Array:
    """Base pose from a position and an optional (w, x, y, z) quaternion."""
    if quaternion is None:
        return se3.translation(jnp.asarray(position, dtype=jnp.float64))
    return se3.from_position_and_quaternion(
        jnp.asarray(position, dtype=jnp.float64),
        jnp.asarray(quaternion, dtype=jnp.float64))


def check_configuration(robot: RobotModel, config: Configuration) -> None:
    """Raise `DimensionMismatch` unless every part of `config` fits `robot`."""
    expected = {
        'base_pose': (4, 4),
        'base_velocity': (6,),
        'base_acceleration': (6,),
        'joint_position': (robot.num_dof,),
        'joint_velocity': (robot.num_dof,),
        'joint_acceleration': (robot.num_dof,),
    }
    for field, shape in expected.items():
        actual = jnp.shape(getattr(config, field))
        if tuple(actual) != shape:
            raise DimensionMismatch(field, shape, actual)
