"""SE(3) rigid-body transforms in JAX.

Poses are 4x4 homogeneous matrices and spatial motion vectors are ordered
[linear, angular]. All functions are pure and broadcast over leading batch
dimensions.
"""

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """Homogeneous (..., 4, 4) pose with rotation R and origin p.

    A single rotation may be broadcast against a batch of positions and
    vice versa.
    """
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=jnp.result_type(p, R))
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)

    return T


def from_position_and_quaternion(p: Array, quat: Array) -> Array:
    """Construct SE(3) transform from a position and a (w, x, y, z) quaternion."""
    return from_position_and_rotation(jnp.asarray(p), so3.from_quaternion(jnp.asarray(quat)))


def translation(p: Array) -> Array:
    """Pure translation by `p`."""
    p = jnp.asarray(p)
    return from_position_and_rotation(p, jnp.eye(3, dtype=p.dtype))


def get_position(T: Array) -> Array:
    """(..., 4, 4) transform -> (..., 3) position."""
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    """(..., 4, 4) transform -> (..., 3, 3) rotation."""
    return T[..., :3, :3]


def adjoint(T: Array) -> Array:
    """
    Motion-vector adjoint of a pose.

    For [linear, angular] motion vectors the adjoint is [[R, [t]x R], [0, R]].
    With T a pure translation by (p_a - p_b) it shifts the reference point of
    a velocity from a to b, which is how the floating-base block of a frame
    Jacobian is formed.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 6, 6) adjoint matrix
    """
    R = T[..., :3, :3]
    t = T[..., :3, 3]

    t_skew = so3.skew_symmetric(t)
    zeros = jnp.zeros_like(R)

    top = jnp.concatenate([R, jnp.matmul(t_skew, R)], axis=-1)
    bottom = jnp.concatenate([zeros, R], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)
