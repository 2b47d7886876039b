"""Geometric frame Jacobians for a floating-base tree.

A frame Jacobian has shape (6, 6 + num_dof) and maps the generalised
velocity [base_velocity; joint_velocity] to the [linear, angular] world
velocity of the frame:

    compute_velocity(robot, config)[frame]
        == J @ concatenate([config.base_velocity, config.joint_velocity])

The first six columns form the floating-base block and the rest the
fixed-base (joint) block.
"""

from typing import Dict

import jax
import jax.numpy as jnp
from jax import Array

from .core import Configuration, RobotModel, check_configuration
from .forward_kinematics import FrameNames, propagate, resolve_frames
from .transforms import se3


def jacobians_from_poses(robot: RobotModel, poses: Array, body_ids: Array) -> Array:
    """Assemble frame Jacobians from already propagated body poses.

    Each joint column is the joint's motion subspace rotated into the world
    frame and shifted from the joint origin to the frame origin; joints off
    the root-to-frame path contribute zero columns.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        poses: (num_bodies, 4, 4) world poses from `propagate`
        body_ids: (k,) body indices of the requested frames

    Returns:
        (k, 6, 6 + num_dof) Jacobians
    """
    joint_poses = poses[robot.dof_to_body]
    subspaces = robot.motion_subspaces[robot.dof_to_body]
    s_lin = jnp.einsum('nij,nj->ni', joint_poses[:, :3, :3], subspaces[:, :3])
    s_ang = jnp.einsum('nij,nj->ni', joint_poses[:, :3, :3], subspaces[:, 3:])

    frame_positions = poses[body_ids, :3, 3]                      # (k, 3)
    lever = frame_positions[:, None, :] - joint_poses[None, :, :3, 3]  # (k, n, 3)
    s_ang = jnp.broadcast_to(s_ang, lever.shape)
    linear = s_lin[None] + jnp.cross(s_ang, lever)

    columns = jnp.concatenate([linear, s_ang], axis=-1) * robot.support[body_ids][..., None]
    fixed_base = jnp.swapaxes(columns, -1, -2)                    # (k, 6, n)

    # Shifting the base twist from the base origin to the frame origin
    base_offset = se3.translation(poses[0, :3, 3] - frame_positions)
    floating_base = se3.adjoint(base_offset)                      # (k, 6, 6)

    return jnp.concatenate([floating_base, fixed_base], axis=-1)


@jax.jit
def _frame_jacobians(robot: RobotModel, config: Configuration, body_ids: Array) -> Array:
    poses, _, _ = propagate(robot, config)
    return jacobians_from_poses(robot, poses, body_ids)


def compute_jacobian(robot: RobotModel, config: Configuration,
                     frame_names: FrameNames = None) -> Dict[str, Array]:
    """Compute the (6, 6 + num_dof) geometric Jacobian of each requested frame.

    Only the base pose and the joint positions of `config` are used.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        config: Configuration at which the Jacobians are evaluated
        frame_names: Frame names, defaults to the model's end-effectors

    Returns:
        Dictionary mapping frame names to Jacobian matrices
    """
    names, ids = resolve_frames(robot, frame_names)
    check_configuration(robot, config)
    return dict(zip(names, _frame_jacobians(robot, config, ids)))


def get_floating_base_jacobian(jacobian: Array) -> Array:
    """The (6, 6) block acting on the base velocity."""
    return jacobian[..., :6]


def get_fixed_base_jacobian(jacobian: Array) -> Array:
    """The (6, num_dof) block acting on the joint velocities."""
    return jacobian[..., 6:]


def compute_jd_qd(robot: RobotModel, config: Configuration,
                  frame_names: FrameNames = None) -> Dict[str, Array]:
    """Compute the velocity-dependent acceleration term J_dot @ nu of each frame.

    This is the frame acceleration with base and joint accelerations set to
    zero, so that

        compute_acceleration(robot, config)[frame]
            == J @ [base_acceleration; joint_acceleration] + compute_jd_qd(...)[frame]
    """
    names, ids = resolve_frames(robot, frame_names)
    check_configuration(robot, config)
    at_rest = config.replace(
        base_acceleration=jnp.zeros_like(config.base_acceleration),
        joint_acceleration=jnp.zeros_like(config.joint_acceleration),
    )
    _, _, accelerations = propagate(robot, at_rest)
    return dict(zip(names, accelerations[ids]))
