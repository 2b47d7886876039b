"""Numerical inverse kinematics for stacks of end-effector targets.

Positions are solved by a bounded damped least-squares (Levenberg-Marquardt)
iteration; velocities and accelerations by a single damped least-squares
solve. Only the joints are unknowns: the floating-base state is an input.
"""

import enum
from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import Dict, List, Optional, Tuple

import jax
import jax.numpy as jnp
from jax import Array

from .core import Configuration, RobotModel, check_configuration
from .errors import DimensionMismatch, MaxIterationsExceeded, SingularConfiguration
from .forward_kinematics import propagate, resolve_frames
from .jacobian import (
    compute_jacobian,
    compute_jd_qd,
    get_fixed_base_jacobian,
    get_floating_base_jacobian,
    jacobians_from_poses,
)
from .transforms import so3

logger = getLogger(__name__)

# Lambda of the damped pseudo-inverse J^T (J J^T + lambda^2 I)^-1.
DAMPING_FACTOR = 1e-4


class IKStatus(enum.Enum):
    IDLE = "idle"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"


@dataclass(frozen=True)
class IKOptions:
    """Options for the position-level IK iteration.

    Attributes:
        tolerance: Residual norm below which the targets count as reached.
            Positions are in meters, orientation errors in radians.
        max_iterations: Maximum number of Newton steps.
        clamp_to_limits: Clamp the joint estimate to the model's joint
            limits after every step.
    """
    tolerance: float = 1e-10
    max_iterations: int = 50
    clamp_to_limits: bool = True


@dataclass(frozen=True)
class IKResult:
    """Outcome of `InverseKinematicsSolver.compute_joint_position`.

    `joint_position` is the best estimate found, also when `success` is False.
    """
    joint_position: Array
    success: bool
    status: IKStatus
    iterations: int
    residual_norm: float

    def raise_for_status(self) -> "IKResult":
        """Raise `MaxIterationsExceeded` if the solve did not converge."""
        if not self.success:
            raise MaxIterationsExceeded(self.iterations, self.residual_norm)
        return self


def damped_least_squares(jacobian: Array, error: Array,
                         damping: float = DAMPING_FACTOR) -> Array:
    """Solve J x = e as x = J^T (J J^T + damping^2 I)^-1 e."""
    rows = jacobian.shape[0]
    JJt = jacobian @ jacobian.T + damping ** 2 * jnp.eye(rows, dtype=jacobian.dtype)
    return jacobian.T @ jnp.linalg.solve(JJt, error)


@partial(jax.jit, static_argnames=("with_orientation",))
def _pose_residual(robot: RobotModel, config: Configuration, body_ids: Array,
                   target_positions: Array, target_rotations: Array,
                   with_orientation: Tuple[bool, ...]) -> Tuple[Array, Array]:
    """Stacked pose error and the matching rows of the fixed-base Jacobian."""
    poses, _, _ = propagate(robot, config)
    jacobians = get_fixed_base_jacobian(jacobians_from_poses(robot, poses, body_ids))

    errors, rows = [], []
    for k, full_pose in enumerate(with_orientation):
        T = poses[body_ids[k]]
        errors.append(target_positions[k] - T[:3, 3])
        rows.append(jacobians[k, :3])
        if full_pose:
            errors.append(so3.log(target_rotations[k] @ T[:3, :3].T))
            rows.append(jacobians[k, 3:])
    return jnp.concatenate(errors), jnp.concatenate(rows, axis=0)


def _task_rows(name: str, target: Array) -> slice:
    """Rows of a spatial motion vector constrained by a velocity/acceleration target."""
    if target.shape == (3,):
        return slice(0, 3)
    elif target.shape == (6,):
        return slice(0, 6)
    raise DimensionMismatch(f"target for '{name}'", [(3,), (6,)], target.shape)


class InverseKinematicsSolver:
    """Inverse kinematics for one or more frames of a floating-base robot.

    Position targets are either a (3,) position, constraining only the frame
    origin, or a (4, 4) pose, constraining the orientation as well. Velocity
    and acceleration targets are either (3,) linear or (6,) [linear, angular]
    vectors.

    `status` follows IDLE -> ITERATING -> CONVERGED | MAX_ITERATIONS_EXCEEDED
    for the most recent position solve, so a solver instance should not be
    shared between threads. The robot model itself can be.

    Args:
        robot: RobotModel to solve for.
        options: IKOptions for the position-level iteration.
    """

    def __init__(self, robot: RobotModel, options: IKOptions = IKOptions()):
        self.robot = robot
        self.options = options
        self.status = IKStatus.IDLE

    def _check_joint_vector(self, what: str, vector) -> Array:
        vector = jnp.asarray(vector, dtype=jnp.float64)
        if vector.shape != (self.robot.num_dof,):
            raise DimensionMismatch(what, (self.robot.num_dof,), vector.shape)
        return vector

    def compute_joint_position(self, target_poses: Dict[str, Array],
                               initial_guess: Array,
                               base_pose: Optional[Array] = None) -> IKResult:
        """Find joint positions placing every target frame at its target.

        Args:
            target_poses: Mapping from frame name to a (3,) position or a
                (4, 4) pose in the world frame.
            initial_guess: (num_dof,) starting joint positions.
            base_pose: (4, 4) floating-base pose, identity if omitted.

        Returns:
            IKResult with the joint estimate and a success flag.
        """
        if not target_poses:
            raise ValueError("At least one target frame is required")
        names, ids = resolve_frames(self.robot, list(target_poses))
        q = self._check_joint_vector("initial_guess", initial_guess)

        positions: List[Array] = []
        rotations: List[Array] = []
        with_orientation: List[bool] = []
        for name in names:
            target = jnp.asarray(target_poses[name], dtype=jnp.float64)
            if target.shape == (3,):
                positions.append(target)
                rotations.append(jnp.eye(3))
                with_orientation.append(False)
            elif target.shape == (4, 4):
                positions.append(target[:3, 3])
                rotations.append(target[:3, :3])
                with_orientation.append(True)
            else:
                raise DimensionMismatch(f"target for '{name}'", [(3,), (4, 4)], target.shape)
        target_positions = jnp.stack(positions)
        target_rotations = jnp.stack(rotations)
        with_orientation = tuple(with_orientation)

        config = Configuration.create(q, base_pose=base_pose)
        check_configuration(self.robot, config)
        options = self.options

        def residual(q):
            error, jac = _pose_residual(self.robot, config.replace(joint_position=q), ids,
                                        target_positions, target_rotations,
                                        with_orientation)
            return error, jac, float(jnp.linalg.norm(error))

        self.status = IKStatus.ITERATING
        error, jac, residual_norm = residual(q)
        iteration = 0
        while residual_norm >= options.tolerance and iteration < options.max_iterations:
            q = q + damped_least_squares(jac, error)
            if options.clamp_to_limits:
                q = jnp.clip(q, self.robot.lower_limits, self.robot.upper_limits)
            iteration += 1
            error, jac, residual_norm = residual(q)
            logger.debug("IK iteration %d: residual norm %.3e", iteration, residual_norm)

        if residual_norm < options.tolerance:
            self.status = IKStatus.CONVERGED
        else:
            self.status = IKStatus.MAX_ITERATIONS_EXCEEDED
            logger.warning("IK did not converge after %d iterations (residual norm %.3e)",
                           iteration, residual_norm)

        return IKResult(
            joint_position=q,
            success=self.status == IKStatus.CONVERGED,
            status=self.status,
            iterations=iteration,
            residual_norm=residual_norm,
        )

    def _stack_tasks(self, rows: List[Array], rhs: List[Array]) -> Array:
        solution = damped_least_squares(jnp.concatenate(rows, axis=0), jnp.concatenate(rhs))
        if not bool(jnp.all(jnp.isfinite(solution))):
            raise SingularConfiguration("Damped least-squares solve produced non-finite values")
        return solution

    def compute_joint_velocity(self, joint_position: Array,
                               target_velocities: Dict[str, Array],
                               base_pose: Optional[Array] = None,
                               base_velocity: Optional[Array] = None) -> Array:
        """Joint velocities realising the target frame velocities.

        Solves J_fixed qd = v_target - J_base base_velocity in the damped
        least-squares sense; joints not involved in any target stay at zero.
        """
        if not target_velocities:
            raise ValueError("At least one target frame is required")
        q = self._check_joint_vector("joint_position", joint_position)
        config = Configuration.create(q, base_pose=base_pose, base_velocity=base_velocity)
        jacobians = compute_jacobian(self.robot, config, list(target_velocities))

        rows, rhs = [], []
        for name, jacobian in jacobians.items():
            target = jnp.asarray(target_velocities[name], dtype=jnp.float64)
            task = _task_rows(name, target)
            base_term = get_floating_base_jacobian(jacobian)[task] @ config.base_velocity
            rows.append(get_fixed_base_jacobian(jacobian)[task])
            rhs.append(target - base_term)
        return self._stack_tasks(rows, rhs)

    def compute_joint_acceleration(self, joint_position: Array,
                                   joint_velocity: Array,
                                   target_accelerations: Dict[str, Array],
                                   base_pose: Optional[Array] = None,
                                   base_velocity: Optional[Array] = None,
                                   base_acceleration: Optional[Array] = None) -> Array:
        """Joint accelerations realising the target frame accelerations.

        Solves J_fixed qdd = a_target - J_dot nu - J_base base_acceleration in
        the damped least-squares sense.
        """
        if not target_accelerations:
            raise ValueError("At least one target frame is required")
        q = self._check_joint_vector("joint_position", joint_position)
        qd = self._check_joint_vector("joint_velocity", joint_velocity)
        config = Configuration.create(q, joint_velocity=qd, base_pose=base_pose,
                                      base_velocity=base_velocity,
                                      base_acceleration=base_acceleration)
        names = list(target_accelerations)
        jacobians = compute_jacobian(self.robot, config, names)
        bias = compute_jd_qd(self.robot, config, names)

        rows, rhs = [], []
        for name, jacobian in jacobians.items():
            target = jnp.asarray(target_accelerations[name], dtype=jnp.float64)
            task = _task_rows(name, target)
            base_term = get_floating_base_jacobian(jacobian)[task] @ config.base_acceleration
            rows.append(get_fixed_base_jacobian(jacobian)[task])
            rhs.append(target - bias[name][task] - base_term)
        return self._stack_tasks(rows, rhs)
