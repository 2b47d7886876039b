"""RobotModel PyTree data structure for a floating-base kinematic tree.

Bodies live in one flat array, ordered parent-before-child, and refer to
their parent by integer index. Body 0 is the floating-base root. The model
is immutable after construction so the same instance can be shared by any
number of concurrent kinematics queries.
"""

import enum
from typing import Tuple

import jax
import jax.numpy as jnp
from jax import Array
from flax import struct

from ..errors import UnknownFrame, UnknownJoint
from ..transforms import se3, so3


class JointType(enum.IntEnum):
    """Closed set of joint variants. Values index `MOTION_TRANSFORMS`."""
    FIXED = 0
    REVOLUTE = 1
    PRISMATIC = 2
    FLOATING = 3


def motion_subspace(joint_type: JointType, axis: Array) -> Array:
    """6D motion subspace [linear, angular] of a single-DOF joint in its own frame."""
    axis = jnp.asarray(axis, dtype=jnp.float64)
    zeros = jnp.zeros(3, dtype=axis.dtype)
    if joint_type == JointType.REVOLUTE:
        return jnp.concatenate([zeros, axis])
    elif joint_type == JointType.PRISMATIC:
        return jnp.concatenate([axis, zeros])
    # Fixed joints do not move; the floating base moves through the base state.
    return jnp.zeros(6, dtype=axis.dtype)


def _static_motion(axis: Array, q: Array) -> Array:
    return jnp.eye(4, dtype=axis.dtype)


def _revolute_motion(axis: Array, q: Array) -> Array:
    return se3.from_position_and_rotation(jnp.zeros_like(axis), so3.from_axis_angle(axis, q))


def _prismatic_motion(axis: Array, q: Array) -> Array:
    return se3.from_position_and_rotation(axis * q, jnp.eye(3, dtype=axis.dtype))


# Branch table for `jax.lax.switch`, indexed by JointType value.
MOTION_TRANSFORMS = (
    _static_motion,     # FIXED
    _revolute_motion,   # REVOLUTE
    _prismatic_motion,  # PRISMATIC
    _static_motion,     # FLOATING, only ever the root
)


def motion_transform(joint_type: Array, axis: Array, q: Array) -> Array:
    """Joint motion transform M(q) for a (possibly traced) joint type code."""
    return jax.lax.switch(joint_type, MOTION_TRANSFORMS, axis, q)


@struct.dataclass
class RobotModel:
    """Immutable PyTree representation of a floating-base kinematic tree.

    Attributes:
        body_names: Tuple of all body names. Index corresponds to body ID.
        joint_names: Tuple of actuated joint names, in DOF order.
        end_effectors: Tuple of body names registered as end-effectors.
        parent_indices: (num_bodies,) parent body index; the root parents itself.
        joint_types: (num_bodies,) `JointType` code of the joint above each body.
        joint_transforms: (num_bodies, 4, 4) fixed transform from parent body to
                          the joint frame of each body.
        joint_axes: (num_bodies, 3) unit joint axes in the joint frame.
        motion_subspaces: (num_bodies, 6) [linear, angular] motion subspaces.
        dof_to_body: (num_dof,) body index moved by each DOF.
        support: (num_bodies, num_dof) 1.0 where the DOF lies on the path from
                 the root to the body, 0.0 elsewhere.
        masses: (num_bodies,) body masses.
        com_offsets: (num_bodies, 3) body centre of mass in the body frame.
        lower_limits: (num_dof,) joint position lower limits (-inf if none).
        upper_limits: (num_dof,) joint position upper limits (+inf if none).
    """
    body_names: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_names: Tuple[str, ...] = struct.field(pytree_node=False)
    end_effectors: Tuple[str, ...] = struct.field(pytree_node=False)
    parent_indices: Array
    joint_types: Array
    joint_transforms: Array
    joint_axes: Array
    motion_subspaces: Array
    dof_to_body: Array
    support: Array
    masses: Array
    com_offsets: Array
    lower_limits: Array
    upper_limits: Array

    @property
    def num_bodies(self) -> int:
        return len(self.body_names)

    @property
    def num_dof(self) -> int:
        return len(self.joint_names)

    def resolve(self, frame_name: str) -> int:
        """Body index of a frame name, raising `UnknownFrame` if absent."""
        try:
            return self.body_names.index(frame_name)
        except ValueError:
            raise UnknownFrame(frame_name) from None

    def joint_index(self, joint_name: str) -> int:
        """DOF index of an actuated joint, raising `UnknownJoint` if absent."""
        try:
            return self.joint_names.index(joint_name)
        except ValueError:
            raise UnknownJoint(joint_name) from None
