"""SO(3) rotation helpers in JAX.

Rotations are 3x3 matrices; quaternions at the boundary use the (w, x, y, z)
layout. The log map goes through the unit quaternion, which keeps the
orientation error used by inverse kinematics well defined up to a half turn.
"""

import jax
import jax.numpy as jnp

Array = jax.Array


def skew_symmetric(v: Array) -> Array:
    """
    Convert 3D vector(s) to the cross-product matrix.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix such that skew(v) @ u == cross(v, u)
    """
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


def from_axis_angle(axis: Array, angle: Array) -> Array:
    """
    Rotation about a unit axis by a given angle (Rodrigues' formula).

    Unlike a generic exponential map this never divides by the angle, so it
    stays smooth through zero and is safe to differentiate.

    Args:
        axis: (..., 3) unit rotation axis
        angle: (...) rotation angle in radians

    Returns:
        (..., 3, 3) rotation matrix
    """
    angle = jnp.asarray(angle)[..., None, None]
    K = skew_symmetric(axis)
    I = jnp.broadcast_to(jnp.eye(3, dtype=K.dtype), K.shape)
    return I + jnp.sin(angle) * K + (1.0 - jnp.cos(angle)) * jnp.matmul(K, K)


def from_rpy(rpy: Array) -> Array:
    """Roll-pitch-yaw angles to a rotation matrix, R = Rz(yaw) Ry(pitch) Rx(roll)."""
    rpy = jnp.asarray(rpy)
    ex = jnp.array([1.0, 0.0, 0.0])
    ey = jnp.array([0.0, 1.0, 0.0])
    ez = jnp.array([0.0, 0.0, 1.0])
    return (from_axis_angle(ez, rpy[..., 2])
            @ from_axis_angle(ey, rpy[..., 1])
            @ from_axis_angle(ex, rpy[..., 0]))


def from_quaternion(quaternions: Array) -> Array:
    """
    Convert quaternions to rotation matrices.

    Args:
        quaternions: (..., 4) array of quaternions in (w, x, y, z) format

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    quaternions = quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)
    w, x, y, z = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x * x, y * y, z * z
    wx, wy, wz = w * x, w * y, w * z
    xy, xz, yz = x * y, x * z, y * z

    return jnp.stack([
        jnp.stack([1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)], axis=-1),
        jnp.stack([2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)], axis=-1),
        jnp.stack([2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)], axis=-1)
    ], axis=-2)


def to_quaternion(R: Array) -> Array:
    """
    Convert rotation matrices to unit quaternions (w, x, y, z) with w >= 0.

    Each of the four candidate quaternions is a scaled copy of the answer;
    the one built from the largest of (trace, R00, R11, R22) is the
    numerically safest, and normalising removes its scale.

    Args:
        R: (..., 3, 3) rotation matrices

    Returns:
        (..., 4) quaternions
    """
    m00, m01, m02 = R[..., 0, 0], R[..., 0, 1], R[..., 0, 2]
    m10, m11, m12 = R[..., 1, 0], R[..., 1, 1], R[..., 1, 2]
    m20, m21, m22 = R[..., 2, 0], R[..., 2, 1], R[..., 2, 2]
    trace = m00 + m11 + m22

    candidates = jnp.stack([
        jnp.stack([1.0 + trace, m21 - m12, m02 - m20, m10 - m01], axis=-1),
        jnp.stack([m21 - m12, 1.0 + m00 - m11 - m22, m01 + m10, m02 + m20], axis=-1),
        jnp.stack([m02 - m20, m01 + m10, 1.0 - m00 + m11 - m22, m12 + m21], axis=-1),
        jnp.stack([m10 - m01, m02 + m20, m12 + m21, 1.0 - m00 - m11 + m22], axis=-1),
    ], axis=-2)

    pick = jnp.argmax(jnp.stack([trace, m00, m11, m22], axis=-1), axis=-1)
    q = jnp.take_along_axis(candidates, pick[..., None, None], axis=-2)[..., 0, :]
    q = q / jnp.linalg.norm(q, axis=-1, keepdims=True)

    return jnp.where(q[..., :1] < 0, -q, q)


def log(R: Array) -> Array:
    """
    SO(3) logarithm map: rotation matrix to axis-angle vector.

    Computed as 2 * atan2(|v|, w) * v / |v| from the unit quaternion (w, v),
    with the first-order limit 2 * v / w for tiny rotations. The returned
    angle lies in [0, pi].

    Args:
        R: (..., 3, 3) rotation matrices

    Returns:
        (..., 3) axis-angle vectors
    """
    q = to_quaternion(R)
    w, v = q[..., :1], q[..., 1:]
    s = jnp.linalg.norm(v, axis=-1, keepdims=True)

    small = s < 1e-10
    s_safe = jnp.where(small, 1.0, s)
    scale = jnp.where(small, 2.0 / w, 2.0 * jnp.arctan2(s, w) / s_safe)

    return scale * v
