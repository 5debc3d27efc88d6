"""
Skeleton builder.

glTF numbers nodes globally. A skin's joint list defines a dense, skin-local
joint index space; JOINTS_0 vertex data and animation targets refer to that.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Tuple

from . import accessor
from .accessor import ComponentType, Shape
from .buffer import BufferSource
from .errors import (
    CardinalityMismatch,
    InvalidJoint,
    NoSkeleton,
    SkeletonError,
    TooManyJoints,
    UnreachableJoint,
)
from .gltf import Document, get_item
from .transform import BasisChange, node_decomposed, uniform_scale

logger = logging.getLogger(__name__)

# JOINTS_0 are carried as u16
MAX_JOINTS = 65535

Matrix4 = Tuple[
    Tuple[float, float, float, float],
    Tuple[float, float, float, float],
    Tuple[float, float, float, float],
    Tuple[float, float, float, float],
]

IDENTITY: Matrix4 = (
    (1.0, 0.0, 0.0, 0.0),
    (0.0, 1.0, 0.0, 0.0),
    (0.0, 0.0, 1.0, 0.0),
    (0.0, 0.0, 0.0, 1.0),
)


class Joint(NamedTuple):
    name: str
    node: int  # index into the glTF nodes
    parent: Optional[int]  # joint index, None for a root joint
    translation: Tuple[float, float, float]
    rotation: Tuple[float, float, float, float]  # xyzw
    scale: float  # WG3D only supports uniform scaling
    inverse_bind_matrix: Matrix4  # column major


class Skeleton:
    def __init__(self, name: str, root: int, joints: List[Joint]) -> None:
        self.name = name
        self.root = root
        self.joints = joints
        self._joint_map: Dict[int, int] = {
            joint.node: i for i, joint in enumerate(joints)
        }

    def __len__(self) -> int:
        return len(self.joints)

    def __repr__(self) -> str:
        return f"Skeleton({self.name!r}, {len(self.joints)} joints)"

    def get_joint_index(self, node_index: int) -> Optional[int]:
        return self._joint_map.get(node_index)

    def get_node_index(self, joint_index: int) -> int:
        if not 0 <= joint_index < len(self.joints):
            raise InvalidJoint(f"{self.name}: joint {joint_index} of {len(self.joints)}")
        return self.joints[joint_index].node


def get_node_parents(document: Document, root: int) -> Dict[int, Optional[int]]:
    """
    child node -> parent node, for root and every node below it
    """
    nodes = document.get("nodes") or []
    parents: Dict[int, Optional[int]] = {root: None}
    stack = [root]
    while stack:
        parent = stack.pop()
        for child in nodes[parent].get("children") or []:
            if not isinstance(child, int) or child < 0 or child >= len(nodes):
                raise SkeletonError(f"nodes[{parent}]: child {child} is not a node")
            if child in parents:
                raise SkeletonError(f"nodes[{child}] is visited twice below {root}")
            parents[child] = parent
            stack.append(child)
    return parents


def get_parents(
    document: Document, root: int, joint_nodes: List[int]
) -> List[Optional[int]]:
    """
    Parent joint index of each joint, None when the scene graph parent is not
    a joint of the same skin.
    """
    node_parents = get_node_parents(document, root)
    joint_map = {node: i for i, node in enumerate(joint_nodes)}

    parents: List[Optional[int]] = []
    for i, node in enumerate(joint_nodes):
        if node not in node_parents:
            raise UnreachableJoint(f"joint {i}: nodes[{node}] is not below nodes[{root}]")
        parent_node = node_parents[node]
        parents.append(None if parent_node is None else joint_map.get(parent_node))
    return parents


def build(
    document: Document,
    skin_index: int,
    buffers: BufferSource,
    change: Optional[BasisChange] = None,
) -> Skeleton:
    """
    change moves the rest poses and inverse bind matrices into the converted
    vertex space, None keeps them as they are in the document
    """
    skin = get_item(document, "skins", skin_index)
    name = skin.get("name") or f"skin{skin_index}"
    joint_nodes: List[int] = list(skin.get("joints") or [])

    if len(joint_nodes) > MAX_JOINTS:
        raise TooManyJoints(
            f"skins[{skin_index}]: {len(joint_nodes)} joints > {MAX_JOINTS}"
        )
    if len(set(joint_nodes)) != len(joint_nodes):
        raise SkeletonError(f"skins[{skin_index}]: duplicated joint node")

    root = skin.get("skeleton")
    nodes = document.get("nodes") or []
    if root is None:
        raise NoSkeleton(f"skins[{skin_index}]")
    if not isinstance(root, int) or root < 0 or root >= len(nodes):
        raise NoSkeleton(f"skins[{skin_index}]: skeleton root {root} is not a node")

    parents = get_parents(document, root, joint_nodes)

    if skin.get("inverseBindMatrices") is not None:
        ibms = accessor.read(
            document,
            buffers,
            skin["inverseBindMatrices"],
            Shape.MAT4,
            (ComponentType.F32,),
        )
        if len(ibms) != len(joint_nodes):
            raise CardinalityMismatch(
                f"skins[{skin_index}]: {len(ibms)} inverseBindMatrices for {len(joint_nodes)} joints"
            )
    else:
        ibms = [IDENTITY] * len(joint_nodes)

    joints = []
    for i, (node_index, parent, ibm) in enumerate(zip(joint_nodes, parents, ibms)):
        node = nodes[node_index]
        translation, rotation, scale = node_decomposed(node)
        if change is not None:
            translation = change.translation(translation)
            rotation = change.rotation_xyzw(rotation)
            ibm = change.transform(ibm)
        joints.append(
            Joint(
                name=node.get("name") or f"joint{i}",
                node=node_index,
                parent=parent,
                translation=translation,
                rotation=rotation,
                scale=uniform_scale(scale, f"skins[{skin_index}] joint {i}"),
                inverse_bind_matrix=ibm,
            )
        )

    logger.debug("skins[%d] %s: %d joints", skin_index, name, len(joints))
    return Skeleton(name, root, joints)


def get(
    document: Document, buffers: BufferSource, change: Optional[BasisChange] = None
) -> List[Skeleton]:
    return [
        build(document, i, buffers, change) for i in range(len(document.get("skins") or []))
    ]


def find_joint(skeletons: List[Skeleton], node_index: int) -> Optional[Tuple[int, int]]:
    """
    (skin index, joint index) of the first skeleton containing node_index
    """
    for i, skeleton in enumerate(skeletons):
        joint_index = skeleton.get_joint_index(node_index)
        if joint_index is not None:
            return i, joint_index
    return None
