"""Assemble a RobotModel from a plain body/joint description.

Model-file loaders (URDF or otherwise) live outside this package; they feed
the bodies and joints they read into a `KinematicTreeBuilder` and call
`build()` to obtain the immutable `RobotModel`.
"""

from collections import deque
from logging import getLogger
from typing import Dict, List, Optional, Sequence

import numpy as np
import jax.numpy as jnp

from ..errors import UnknownFrame
from ..transforms import se3, so3
from .robot_model import JointType, RobotModel, motion_subspace

logger = getLogger(__name__)


class KinematicTreeBuilder:
    """Collects bodies and joints, then emits a topologically ordered RobotModel.

    Args:
        root_name: Name of the floating-base body.
        mass: Mass of the floating-base body.
        com: Centre of mass of the floating-base body in its own frame.
    """

    def __init__(self, root_name: str, mass: float = 0.0,
                 com: Sequence[float] = (0.0, 0.0, 0.0)):
        self.root_name = root_name
        self._bodies: Dict[str, dict] = {
            root_name: {
                'parent': None,
                'joint_name': None,
                'joint_type': JointType.FLOATING,
                'xyz': (0.0, 0.0, 0.0),
                'rpy': (0.0, 0.0, 0.0),
                'axis': (0.0, 0.0, 1.0),
                'mass': float(mass),
                'com': tuple(com),
                'limits': (-np.inf, np.inf),
            }
        }
        self._joint_order: List[str] = []
        self._end_effectors: List[str] = []

    def add_body(self, name: str, parent: str,
                 joint_name: Optional[str] = None,
                 joint_type: JointType = JointType.FIXED,
                 xyz: Sequence[float] = (0.0, 0.0, 0.0),
                 rpy: Sequence[float] = (0.0, 0.0, 0.0),
                 axis: Sequence[float] = (0.0, 0.0, 1.0),
                 mass: float = 0.0,
                 com: Sequence[float] = (0.0, 0.0, 0.0),
                 lower: float = -np.inf,
                 upper: float = np.inf) -> "KinematicTreeBuilder":
        """Attach a body to `parent` through a joint.

        `xyz`/`rpy` give the joint frame relative to the parent body; the
        joint moves about (or along) `axis` expressed in that joint frame.
        Returns the builder so calls can be chained.
        """
        if name in self._bodies:
            raise ValueError(f"Body '{name}' is already defined")
        joint_type = JointType(joint_type)
        if joint_type == JointType.FLOATING:
            raise ValueError("Only the root body can be attached through a floating joint")
        if joint_type != JointType.FIXED:
            if joint_name is None:
                raise ValueError(f"Movable joint above body '{name}' needs a name")
            if joint_name in self._joint_order:
                raise ValueError(f"Joint '{joint_name}' is already defined")
            if np.linalg.norm(axis) < 1e-12:
                raise ValueError(f"Joint '{joint_name}' has a zero axis")
            if lower > upper:
                raise ValueError(f"Joint '{joint_name}' has lower limit above upper limit")
            self._joint_order.append(joint_name)

        self._bodies[name] = {
            'parent': parent,
            'joint_name': joint_name,
            'joint_type': joint_type,
            'xyz': tuple(xyz),
            'rpy': tuple(rpy),
            'axis': tuple(axis),
            'mass': float(mass),
            'com': tuple(com),
            'limits': (float(lower), float(upper)),
        }
        return self

    def add_end_effector(self, name: str) -> "KinematicTreeBuilder":
        """Register an existing (or later added) body as an end-effector."""
        if name not in self._end_effectors:
            self._end_effectors.append(name)
        return self

    def build(self) -> RobotModel:
        """Validate the description and return the immutable RobotModel."""
        for name, body in self._bodies.items():
            if body['parent'] is not None and body['parent'] not in self._bodies:
                raise UnknownFrame(body['parent'])
        for name in self._end_effectors:
            if name not in self._bodies:
                raise UnknownFrame(name)

        children: Dict[str, List[str]] = {name: [] for name in self._bodies}
        for name, body in self._bodies.items():
            if body['parent'] is not None:
                children[body['parent']].append(name)

        # Breadth-first from the root guarantees parent-before-child order.
        ordered = []
        queue = deque([self.root_name])
        while queue:
            current = queue.popleft()
            ordered.append(current)
            queue.extend(children[current])

        if len(ordered) != len(self._bodies):
            unreachable = sorted(set(self._bodies) - set(ordered))
            raise ValueError(f"Bodies not connected to the root: {unreachable}")

        body_index = {name: i for i, name in enumerate(ordered)}
        dof_index = {joint: k for k, joint in enumerate(self._joint_order)}
        num_bodies, num_dof = len(ordered), len(self._joint_order)

        parent_indices = np.zeros(num_bodies, dtype=np.int32)
        joint_types = np.zeros(num_bodies, dtype=np.int32)
        dof_to_body = np.zeros(num_dof, dtype=np.int32)
        support = np.zeros((num_bodies, num_dof))
        lower_limits = np.zeros(num_dof)
        upper_limits = np.zeros(num_dof)
        joint_transforms, joint_axes, subspaces = [], [], []

        for i, name in enumerate(ordered):
            body = self._bodies[name]
            parent = body['parent']
            parent_indices[i] = i if parent is None else body_index[parent]
            joint_types[i] = int(body['joint_type'])

            axis = np.asarray(body['axis'], dtype=np.float64)
            axis = axis / np.linalg.norm(axis)
            joint_axes.append(axis)
            subspaces.append(motion_subspace(body['joint_type'], axis))
            joint_transforms.append(se3.from_position_and_rotation(
                jnp.asarray(body['xyz'], dtype=jnp.float64),
                so3.from_rpy(jnp.asarray(body['rpy'], dtype=jnp.float64))))

            if parent is not None:
                support[i] = support[parent_indices[i]]
            if body['joint_type'] in (JointType.REVOLUTE, JointType.PRISMATIC):
                k = dof_index[body['joint_name']]
                dof_to_body[k] = i
                support[i, k] = 1.0
                lower_limits[k], upper_limits[k] = body['limits']

        robot = RobotModel(
            body_names=tuple(ordered),
            joint_names=tuple(self._joint_order),
            end_effectors=tuple(self._end_effectors),
            parent_indices=jnp.asarray(parent_indices),
            joint_types=jnp.asarray(joint_types),
            joint_transforms=jnp.stack(joint_transforms),
            joint_axes=jnp.asarray(np.stack(joint_axes)),
            motion_subspaces=jnp.stack(subspaces),
            dof_to_body=jnp.asarray(dof_to_body),
            support=jnp.asarray(support),
            masses=jnp.asarray([self._bodies[n]['mass'] for n in ordered], dtype=jnp.float64),
            com_offsets=jnp.asarray([self._bodies[n]['com'] for n in ordered], dtype=jnp.float64),
            lower_limits=jnp.asarray(lower_limits),
            upper_limits=jnp.asarray(upper_limits),
        )
        logger.debug("Built kinematic tree with %d bodies, %d DOF and %d end-effectors",
                     num_bodies, num_dof, len(self._end_effectors))
        return robot
