"""A HyQ-like quadruped reference model.

Four legs (lf, lh, rf, rh) hang below a floating trunk. Each leg has a hip
flexion-extension (HFE) and a knee flexion-extension (KFE) joint about the
body y axis, and optionally a hip abduction-adduction (HAA) joint about x.
Feet are fixed bodies at the end of the lower legs and are registered as
end-effectors.
"""

from ..core import JointType, KinematicTreeBuilder, RobotModel

LEGS = ("lf", "lh", "rf", "rh")

HIP_OFFSETS = {
    "lf": (0.3735, 0.207, 0.0),
    "lh": (-0.3735, 0.207, 0.0),
    "rf": (0.3735, -0.207, 0.0),
    "rh": (-0.3735, -0.207, 0.0),
}
UPPER_LEG_LENGTH = 0.35
LOWER_LEG_LENGTH = 0.33

TRUNK_MASS = 53.43
HIP_MASS = 2.93
UPPER_LEG_MASS = 2.64
LOWER_LEG_MASS = 0.88


def _knee_limits(leg):
    # Front knees bend backwards, hind knees forwards.
    if leg.endswith("f"):
        return -2.44, -0.35
    return 0.35, 2.44


def load_quadruped(with_haa: bool = False) -> RobotModel:
    """
    Build the quadruped model.

    Args:
        with_haa: Add the hip abduction-adduction joints (12 DOF instead of 8).

    Returns:
        RobotModel with joints ordered leg by leg (lf, lh, rf, rh) and
        HAA, HFE, KFE within each leg.
    """
    builder = KinematicTreeBuilder("trunk", mass=TRUNK_MASS)

    for leg in LEGS:
        hip_parent, hip_offset = "trunk", HIP_OFFSETS[leg]
        if with_haa:
            builder.add_body(f"{leg}_hipassembly", "trunk",
                             joint_name=f"{leg}_haa_joint",
                             joint_type=JointType.REVOLUTE,
                             xyz=hip_offset, axis=(1.0, 0.0, 0.0),
                             mass=HIP_MASS, lower=-1.22, upper=0.44)
            hip_parent, hip_offset = f"{leg}_hipassembly", (0.0, 0.0, 0.0)

        builder.add_body(f"{leg}_upperleg", hip_parent,
                         joint_name=f"{leg}_hfe_joint",
                         joint_type=JointType.REVOLUTE,
                         xyz=hip_offset, axis=(0.0, 1.0, 0.0),
                         mass=UPPER_LEG_MASS, com=(0.0, 0.0, -0.5 * UPPER_LEG_LENGTH),
                         lower=-1.22, upper=1.22)
        lower, upper = _knee_limits(leg)
        builder.add_body(f"{leg}_lowerleg", f"{leg}_upperleg",
                         joint_name=f"{leg}_kfe_joint",
                         joint_type=JointType.REVOLUTE,
                         xyz=(0.0, 0.0, -UPPER_LEG_LENGTH), axis=(0.0, 1.0, 0.0),
                         mass=LOWER_LEG_MASS, com=(0.0, 0.0, -0.5 * LOWER_LEG_LENGTH),
                         lower=lower, upper=upper)
        builder.add_body(f"{leg}_foot", f"{leg}_lowerleg",
                         xyz=(0.0, 0.0, -LOWER_LEG_LENGTH))
        builder.add_end_effector(f"{leg}_foot")

    return builder.build()
