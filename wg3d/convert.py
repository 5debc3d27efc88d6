import logging
from typing import List, NamedTuple, Optional, Tuple
import mathutils
from mathutils import Matrix

from . import animation, material, mesh, skin, texture
from .buffer import BufferSource
from .errors import ConvertError, NoDefaultScene
from .gltf import Document, get_item
from .settings import Settings
from .transform import BasisChange, node_matrix

logger = logging.getLogger(__name__)


class Model(NamedTuple):
    meshes: List[mesh.Mesh]
    skins: List[skin.Skeleton]
    animations: List[animation.Animation]
    materials: List[material.Material]
    textures: List[texture.Texture]
    # source direction of the output +X, +Y, +Z
    axes: Tuple[str, str, str] = ("left", "up", "forward")


def get_default_scene(document: Document) -> dict:
    scene = document.get("scene")
    if scene is None:
        if not document.get("scenes"):
            raise NoDefaultScene()
        scene = 0
    return get_item(document, "scenes", scene)


def traverse(document: Document) -> List[Tuple[int, mathutils.Matrix]]:
    """
    (node index, world matrix) of every node under the default scene, depth first
    """
    scene = get_default_scene(document)
    nodes = document.get("nodes") or []
    result = []
    visited = set()
    stack = [(root, Matrix.Identity(4)) for root in reversed(scene.get("nodes") or [])]
    while stack:
        node_index, parent_matrix = stack.pop()
        if node_index in visited:
            raise ConvertError(f"nodes[{node_index}] is reached twice")
        visited.add(node_index)
        node = get_item(document, "nodes", node_index)
        world = parent_matrix @ node_matrix(node)
        result.append((node_index, world))
        for child in reversed(node.get("children") or []):
            if not isinstance(child, int) or not 0 <= child < len(nodes):
                raise ConvertError(f"nodes[{node_index}]: child {child} is not a node")
            stack.append((child, world))
    return result


def convert(
    document: Document, buffers: BufferSource, settings: Optional[Settings] = None
) -> Model:
    """
    Single forward pass: glTF document + buffers -> Model.

    Any error aborts the whole conversion.
    """
    if settings is None:
        settings = Settings()
    space = settings.matrix()
    # skins and keyframes follow the vertices into the converted space
    change = None if space == Matrix.Identity(4) else BasisChange(space)

    textures = texture.get(document, buffers)
    materials = material.get(document, textures)
    skins = skin.get(document, buffers, change)
    animations = animation.get(document, skins, buffers, change)

    meshes = []
    for node_index, world in traverse(document):
        node = document["nodes"][node_index]
        if node.get("mesh") is None:
            continue
        # skinned vertices are posed by their joints, not by the node
        if settings.apply_node_transforms and node.get("skin") is None:
            matrix = space @ world
        else:
            matrix = space
        meshes.append(mesh.get(document, node_index, buffers, settings, matrix, skins))

    logger.info(
        "%d meshes, %d skins, %d animations, %d materials, %d textures",
        len(meshes),
        len(skins),
        len(animations),
        len(materials),
        len(textures),
    )
    return Model(meshes, skins, animations, materials, textures, settings.axes())
