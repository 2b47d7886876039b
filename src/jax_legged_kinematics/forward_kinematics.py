"""Forward kinematics: frame poses, spatial velocities and accelerations.

Everything is computed by one pass over the tree from the floating base
outward (`propagate`). Motion vectors are [linear, angular] in the world
frame, the linear part being the motion of the frame origin.
"""

from typing import Dict, Iterable, List, Optional, Tuple, Union

import jax
import jax.numpy as jnp
from jax import Array

from .core import Configuration, RobotModel, check_configuration, motion_transform

FrameNames = Optional[Union[str, Iterable[str]]]


def resolve_frames(robot: RobotModel, frame_names: FrameNames) -> Tuple[List[str], Array]:
    """Unique frame names and their body indices.

    Defaults to the model's end-effectors. Raises `UnknownFrame` before any
    computation happens.
    """
    if frame_names is None:
        frame_names = robot.end_effectors
    elif isinstance(frame_names, str):
        frame_names = [frame_names]
    names = list(dict.fromkeys(frame_names))
    ids = jnp.asarray([robot.resolve(name) for name in names], dtype=jnp.int32)
    return names, ids


@jax.jit
def propagate(robot: RobotModel, config: Configuration) -> Tuple[Array, Array, Array]:
    """World poses, velocities and accelerations of every body.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        config: Configuration with base and joint state

    Returns:
        Tuple of arrays with shapes (num_bodies, 4, 4), (num_bodies, 6) and
        (num_bodies, 6)
    """
    num_bodies = robot.num_bodies
    dtype = config.base_pose.dtype

    def scatter(values):
        return jnp.zeros(num_bodies, dtype=dtype).at[robot.dof_to_body].set(values)

    q = scatter(config.joint_position)
    qd = scatter(config.joint_velocity)
    qdd = scatter(config.joint_acceleration)

    # The root body takes the base state verbatim.
    poses = jnp.tile(jnp.eye(4, dtype=dtype), (num_bodies, 1, 1)).at[0].set(config.base_pose)
    velocities = jnp.zeros((num_bodies, 6), dtype=dtype).at[0].set(config.base_velocity)
    accelerations = jnp.zeros((num_bodies, 6), dtype=dtype).at[0].set(config.base_acceleration)

    def scan_body(carry, i):
        """Processes body `i` from its parent's state in `carry`."""
        poses, velocities, accelerations = carry
        parent = robot.parent_indices[i]
        T_parent = poses[parent]

        T_joint_motion = motion_transform(robot.joint_types[i], robot.joint_axes[i], q[i])
        T_child = T_parent @ robot.joint_transforms[i] @ T_joint_motion

        # Joint motion subspace rotated into the world frame
        R = T_child[:3, :3]
        s_lin = R @ robot.motion_subspaces[i, :3]
        s_ang = R @ robot.motion_subspaces[i, 3:]

        v_parent, w_parent = velocities[parent, :3], velocities[parent, 3:]
        a_parent, dw_parent = accelerations[parent, :3], accelerations[parent, 3:]
        r = T_child[:3, 3] - T_parent[:3, 3]

        w = w_parent + s_ang * qd[i]
        v = v_parent + jnp.cross(w_parent, r) + s_lin * qd[i]

        dw = dw_parent + jnp.cross(w_parent, s_ang * qd[i]) + s_ang * qdd[i]
        a = (a_parent
             + jnp.cross(dw_parent, r)
             + jnp.cross(w_parent, v - v_parent)
             + jnp.cross(w, s_lin * qd[i])
             + s_lin * qdd[i])

        poses = poses.at[i].set(T_child)
        velocities = velocities.at[i].set(jnp.concatenate([v, w]))
        accelerations = accelerations.at[i].set(jnp.concatenate([a, dw]))
        return (poses, velocities, accelerations), None

    # Body 0 is the base case; bodies are stored parent-before-child.
    carry, _ = jax.lax.scan(scan_body, (poses, velocities, accelerations),
                            jnp.arange(1, num_bodies))
    return carry


def compute_pose(robot: RobotModel, config: Configuration,
                 frame_names: FrameNames = None) -> Dict[str, Array]:
    """Compute the world pose of each requested frame.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        config: Configuration; only the base pose and joint positions are used
        frame_names: Frame names, defaults to the model's end-effectors

    Returns:
        Dictionary mapping frame names to their 4x4 SE(3) world poses
    """
    names, ids = resolve_frames(robot, frame_names)
    check_configuration(robot, config)
    poses, _, _ = propagate(robot, config)
    return dict(zip(names, poses[ids]))


def compute_velocity(robot: RobotModel, config: Configuration,
                     frame_names: FrameNames = None) -> Dict[str, Array]:
    """Compute the [linear, angular] world velocity of each requested frame."""
    names, ids = resolve_frames(robot, frame_names)
    check_configuration(robot, config)
    _, velocities, _ = propagate(robot, config)
    return dict(zip(names, velocities[ids]))


def compute_acceleration(robot: RobotModel, config: Configuration,
                         frame_names: FrameNames = None) -> Dict[str, Array]:
    """Compute the [linear, angular] world acceleration of each requested frame.

    The result is the time derivative of `compute_velocity`, i.e. it contains
    the velocity-dependent (Coriolis and centripetal) terms as well as the
    contributions of the base and joint accelerations.
    """
    names, ids = resolve_frames(robot, frame_names)
    check_configuration(robot, config)
    _, _, accelerations = propagate(robot, config)
    return dict(zip(names, accelerations[ids]))


def compute_com_rate(robot: RobotModel, config: Configuration) -> Tuple[Array, Array]:
    """Centre of mass position and velocity of the whole robot in the world frame.

    Returns:
        Tuple (position, velocity), each of shape (3,)
    """
    check_configuration(robot, config)
    total_mass = float(jnp.sum(robot.masses))
    if total_mass <= 0.0:
        raise ValueError("Robot model has no mass; cannot compute its centre of mass")

    poses, velocities, _ = propagate(robot, config)
    offsets = jnp.einsum('nij,nj->ni', poses[:, :3, :3], robot.com_offsets)
    points = poses[:, :3, 3] + offsets
    point_velocities = velocities[:, :3] + jnp.cross(velocities[:, 3:], offsets)

    position = robot.masses @ points / total_mass
    velocity = robot.masses @ point_velocities / total_mass
    return position, velocity
