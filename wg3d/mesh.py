import logging
from typing import List, NamedTuple, Optional
import mathutils

from . import primitive
from .buffer import BufferSource
from .errors import CardinalityMismatch, ConvertError
from .gltf import Document, get_item
from .settings import Settings
from .skin import Skeleton

logger = logging.getLogger(__name__)


class Mesh(NamedTuple):
    name: str
    node: int
    skin: Optional[int]
    weights: Optional[List[float]]  # default morph target weights
    primitives: List[primitive.Primitive]


def get(
    document: Document,
    node_index: int,
    buffers: BufferSource,
    settings: Settings,
    matrix: Optional[mathutils.Matrix],
    skeletons: List[Skeleton],
) -> Mesh:
    node = get_item(document, "nodes", node_index)
    mesh_index = node["mesh"]
    mesh = get_item(document, "meshes", mesh_index)
    name = mesh.get("name") or node.get("name") or f"mesh{mesh_index}"

    skin = node.get("skin")
    joint_count = None
    if skin is not None:
        if not 0 <= skin < len(skeletons):
            raise ConvertError(f"nodes[{node_index}]: skin {skin} is not defined")
        joint_count = len(skeletons[skin])

    weights = mesh.get("weights")
    if weights is None:
        weights = node.get("weights")

    primitives = [
        primitive.get(
            document,
            prim,
            buffers,
            skin is not None,
            settings,
            matrix=matrix,
            joint_count=joint_count,
            what=f"meshes[{mesh_index}].primitives[{i}]",
        )
        for i, prim in enumerate(mesh.get("primitives") or [])
    ]
    for i, prim in enumerate(primitives):
        if weights is not None and prim.morph_targets and len(weights) != len(prim.morph_targets):
            raise CardinalityMismatch(
                f"meshes[{mesh_index}].primitives[{i}]: {len(prim.morph_targets)} targets, {len(weights)} weights"
            )

    logger.debug("nodes[%d] %s: %d primitives", node_index, name, len(primitives))
    return Mesh(
        name=name,
        node=node_index,
        skin=skin,
        weights=list(weights) if weights is not None else None,
        primitives=primitives,
    )
