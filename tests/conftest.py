"""Shared fixtures: reference robots and random configurations."""

import jax
import jax.numpy as jnp
import pytest

from jax_legged_kinematics.core import Configuration, JointType, KinematicTreeBuilder, base_pose_from
from jax_legged_kinematics.models import load_quadruped

# Calibration pose of the 8-DOF quadruped, ordered lf, lh, rf, rh (HFE, KFE)
CALIBRATION_POSE = jnp.array([0.75, -1.5, -0.75, 1.5, 0.75, -1.5, -0.75, 1.5])


@pytest.fixture
def quadruped():
    return load_quadruped()


@pytest.fixture
def quadruped_haa():
    return load_quadruped(with_haa=True)


@pytest.fixture
def slider_arm():
    """Prismatic carriage carrying a two-joint arm, every joint frame tilted."""
    return (KinematicTreeBuilder("base", mass=1.0)
            .add_body("carriage", "base", joint_name="slide",
                      joint_type=JointType.PRISMATIC,
                      xyz=(0.1, 0.0, 0.2), rpy=(0.3, -0.4, 0.5), axis=(1.0, 0.5, 0.2),
                      mass=0.5)
            .add_body("upper_arm", "carriage", joint_name="shoulder",
                      joint_type=JointType.REVOLUTE,
                      xyz=(0.0, 0.1, 0.3), rpy=(-0.2, 0.1, 0.7), axis=(0.0, 0.0, 1.0),
                      mass=0.4, com=(0.2, 0.0, 0.0))
            .add_body("forearm", "upper_arm", joint_name="elbow",
                      joint_type=JointType.REVOLUTE,
                      xyz=(0.4, 0.0, 0.0), rpy=(0.5, 0.0, -0.3), axis=(0.0, 1.0, 0.3),
                      mass=0.3, com=(0.15, 0.0, 0.0))
            .add_body("tool", "forearm", xyz=(0.3, 0.05, -0.1), rpy=(0.1, 0.2, 0.3))
            .add_end_effector("tool")
            .build())


@pytest.fixture
def calibration_pose():
    return CALIBRATION_POSE


@pytest.fixture
def random_configuration():
    """Factory for random configurations with a moving floating base."""

    def make(robot, seed, moving_base=True):
        keys = jax.random.split(jax.random.PRNGKey(seed), 8)
        n = robot.num_dof
        quat = jax.random.normal(keys[0], (4,))
        base_pose = base_pose_from(jax.random.uniform(keys[1], (3,), minval=-1.0, maxval=1.0),
                                   quat / jnp.linalg.norm(quat))
        config = Configuration.create(
            joint_position=jax.random.uniform(keys[2], (n,), minval=-1.0, maxval=1.0),
            joint_velocity=jax.random.normal(keys[3], (n,)),
            joint_acceleration=jax.random.normal(keys[4], (n,)),
            base_pose=base_pose,
        )
        if moving_base:
            config = config.replace(base_velocity=jax.random.normal(keys[5], (6,)),
                                    base_acceleration=jax.random.normal(keys[6], (6,)))
        return config

    return make
