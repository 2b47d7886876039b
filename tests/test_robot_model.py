"""Tests for the RobotModel PyTree and the kinematic tree builder."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from jax_legged_kinematics.core import (
    Configuration,
    JointType,
    KinematicTreeBuilder,
    RobotModel,
    base_pose_from,
    check_configuration,
)
from jax_legged_kinematics.errors import DimensionMismatch, UnknownFrame, UnknownJoint
from jax_legged_kinematics.models import load_quadruped


def test_load_quadruped_structure():
    """The 8-DOF quadruped has the expected bodies, joints and end-effectors."""
    robot = load_quadruped()

    assert isinstance(robot, RobotModel)
    assert robot.num_bodies == 13  # trunk + 4 x (upperleg, lowerleg, foot)
    assert robot.num_dof == 8
    assert robot.joint_names == (
        "lf_hfe_joint", "lf_kfe_joint", "lh_hfe_joint", "lh_kfe_joint",
        "rf_hfe_joint", "rf_kfe_joint", "rh_hfe_joint", "rh_kfe_joint",
    )
    assert robot.end_effectors == ("lf_foot", "lh_foot", "rf_foot", "rh_foot")

    # Verify array shapes
    n, N = robot.num_dof, robot.num_bodies
    assert robot.parent_indices.shape == (N,)
    assert robot.joint_transforms.shape == (N, 4, 4)
    assert robot.motion_subspaces.shape == (N, 6)
    assert robot.support.shape == (N, n)
    assert robot.lower_limits.shape == (n,)


def test_bodies_are_topologically_ordered():
    """Every parent is stored before its children; the root parents itself."""
    robot = load_quadruped(with_haa=True)

    assert robot.body_names[0] == "trunk"
    assert int(robot.parent_indices[0]) == 0
    assert int(robot.joint_types[0]) == JointType.FLOATING
    for i in range(1, robot.num_bodies):
        assert int(robot.parent_indices[i]) < i


def test_dof_indices_are_contiguous():
    """DOF indices cover 0..n-1 once each and point at movable joints."""
    robot = load_quadruped(with_haa=True)

    assert robot.num_dof == 12
    assert [robot.joint_index(name) for name in robot.joint_names] == list(range(12))
    assert len(set(np.asarray(robot.dof_to_body).tolist())) == 12
    for body in np.asarray(robot.dof_to_body):
        assert int(robot.joint_types[body]) == JointType.REVOLUTE


def test_support_follows_the_leg():
    """A foot is moved by its own leg joints only."""
    robot = load_quadruped(with_haa=True)
    support = np.asarray(robot.support[robot.resolve("rh_foot")])

    expected = np.zeros(12)
    for joint in ("rh_haa_joint", "rh_hfe_joint", "rh_kfe_joint"):
        expected[robot.joint_index(joint)] = 1.0
    np.testing.assert_array_equal(support, expected)
    np.testing.assert_array_equal(np.asarray(robot.support[0]), np.zeros(12))


def test_motion_subspaces_by_joint_type():
    """Revolute joints carry an angular subspace, prismatic a linear one."""
    robot = (KinematicTreeBuilder("base")
             .add_body("slider", "base", joint_name="slide",
                       joint_type=JointType.PRISMATIC, axis=(0.0, 0.0, 2.0))
             .add_body("arm", "slider", joint_name="turn",
                       joint_type=JointType.REVOLUTE, axis=(1.0, 0.0, 0.0))
             .add_body("tip", "arm", xyz=(0.0, 0.5, 0.0))
             .build())

    np.testing.assert_allclose(robot.motion_subspaces[robot.resolve("slider")],
                               jnp.array([0.0, 0.0, 1.0, 0.0, 0.0, 0.0]))
    np.testing.assert_allclose(robot.motion_subspaces[robot.resolve("arm")],
                               jnp.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0]))
    np.testing.assert_allclose(robot.motion_subspaces[robot.resolve("tip")], jnp.zeros(6))


def test_resolve_and_joint_index_errors():
    """Unknown names raise the dedicated errors."""
    robot = load_quadruped()

    assert robot.resolve("trunk") == 0
    with pytest.raises(UnknownFrame, match="Frame 'nonexistent_link' not found"):
        robot.resolve("nonexistent_link")
    with pytest.raises(UnknownJoint, match="Joint 'lf_haa_joint' not found"):
        robot.joint_index("lf_haa_joint")


def test_builder_rejects_invalid_trees():
    """Duplicates, dangling parents and floating joints below the root are rejected."""
    with pytest.raises(ValueError, match="already defined"):
        KinematicTreeBuilder("base").add_body("base", "base")

    with pytest.raises(ValueError, match="floating"):
        KinematicTreeBuilder("base").add_body("b", "base", joint_type=JointType.FLOATING)

    with pytest.raises(ValueError, match="needs a name"):
        KinematicTreeBuilder("base").add_body("b", "base", joint_type=JointType.REVOLUTE)

    with pytest.raises(UnknownFrame):
        KinematicTreeBuilder("base").add_body("b", "missing").build()

    with pytest.raises(UnknownFrame):
        KinematicTreeBuilder("base").add_end_effector("foot").build()


def test_robot_model_is_pytree():
    """RobotModel flattens and unflattens as a JAX PyTree."""
    robot = load_quadruped()

    flat_robot, tree_def = jax.tree_util.tree_flatten(robot)
    reconstructed = jax.tree_util.tree_unflatten(tree_def, flat_robot)

    assert reconstructed.body_names == robot.body_names
    assert reconstructed.joint_names == robot.joint_names
    np.testing.assert_array_equal(reconstructed.parent_indices, robot.parent_indices)
    np.testing.assert_array_equal(reconstructed.joint_transforms, robot.joint_transforms)


def test_configuration_defaults():
    """Omitted configuration parts default to identity and zeros."""
    config = Configuration.create(jnp.ones(8))

    np.testing.assert_array_equal(config.base_pose, jnp.eye(4))
    np.testing.assert_array_equal(config.base_velocity, jnp.zeros(6))
    np.testing.assert_array_equal(config.joint_velocity, jnp.zeros(8))
    assert config.joint_position.dtype == jnp.float64


def test_base_pose_from_position_only():
    """A position without orientation yields a pure translation."""
    T = base_pose_from([0.1, 0.2, 0.6])
    np.testing.assert_allclose(T[:3, 3], jnp.array([0.1, 0.2, 0.6]))
    np.testing.assert_allclose(T[:3, :3], jnp.eye(3))


def test_check_configuration_dimension_mismatch():
    """Wrongly sized joint vectors and base quantities are rejected."""
    robot = load_quadruped()

    check_configuration(robot, Configuration.zeros(8))
    with pytest.raises(DimensionMismatch, match="joint_position"):
        check_configuration(robot, Configuration.zeros(12))
    with pytest.raises(DimensionMismatch, match="base_velocity"):
        check_configuration(robot, Configuration.create(jnp.zeros(8), base_velocity=jnp.zeros(3)))
