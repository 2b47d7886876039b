"""Exceptions raised by the kinematics engine.

Structural mistakes (unknown names, wrongly sized vectors) are raised
immediately. Inverse kinematics reports non-convergence through its result
object; `UnreachableTarget` is only raised when a caller asks for it.
"""


class KinematicsError(Exception):
    """Base class for all kinematics errors."""


class UnknownFrame(KinematicsError, ValueError):
    """A frame (body) name is not registered in the robot model."""

    def __init__(self, name: str):
        super().__init__(f"Frame '{name}' not found in robot model")
        self.name = name


class UnknownJoint(KinematicsError, ValueError):
    """A joint name is not an actuated joint of the robot model."""

    def __init__(self, name: str):
        super().__init__(f"Joint '{name}' not found in robot model")
        self.name = name


class DimensionMismatch(KinematicsError, ValueError):
    """A vector or matrix does not have the shape the model requires.

    `expected` is a single shape or a list of accepted shapes.
    """

    def __init__(self, what: str, expected, actual):
        if isinstance(expected, list):
            expected = [tuple(shape) for shape in expected]
            allowed = " or ".join(str(shape) for shape in expected)
        else:
            expected = tuple(expected)
            allowed = str(expected)
        super().__init__(f"{what} must have shape {allowed}, got {tuple(actual)}")
        self.expected = expected
        self.actual = tuple(actual)


class SingularConfiguration(KinematicsError):
    """A damped least-squares solve still produced non-finite values."""


class UnreachableTarget(KinematicsError):
    """Inverse kinematics could not reach the requested targets."""


class MaxIterationsExceeded(UnreachableTarget):
    """Inverse kinematics ran out of iterations before converging."""

    def __init__(self, iterations: int, residual_norm: float):
        super().__init__(
            f"IK did not converge after {iterations} iterations "
            f"(residual norm {residual_norm:.3e})")
        self.iterations = iterations
        self.residual_norm = residual_norm
