import ctypes
import logging
from typing import List, NamedTuple, Optional, Tuple
import mathutils
from mathutils import Vector

from . import accessor
from .accessor import ComponentType, INDEX_TYPES, Shape
from .buffer import BufferSource
from .errors import CardinalityMismatch, ConvertError
from .gltf import Document
from .settings import Settings
from .vertex import VertexAttributeSet, assemble

logger = logging.getLogger(__name__)

TRIANGLES = 4

Vec3 = Tuple[float, float, float]


class Indices(NamedTuple):
    stride: int  # 2 or 4
    indices: ctypes.Array

    def get_draw_count(self) -> int:
        return len(self.indices)


class MorphTarget(NamedTuple):
    positions: Optional[List[Vec3]]
    normals: Optional[List[Vec3]]
    tangents: Optional[List[Vec3]]


class Primitive(NamedTuple):
    material: Optional[int]
    mode: int
    vertex_attributes: VertexAttributeSet
    indices: Indices
    morph_targets: List[MorphTarget]


def get_indices(
    document: Document,
    primitive: dict,
    buffers: BufferSource,
    vertex_count: int,
    what: str,
) -> Indices:
    if primitive.get("indices") is None:
        values = range(vertex_count)
    else:
        values = accessor.read(
            document, buffers, primitive["indices"], Shape.SCALAR, INDEX_TYPES
        )
        for i, index in enumerate(values):
            if index >= vertex_count:
                raise ConvertError(
                    f"{what}: index[{i}]={index} >= vertex count {vertex_count}"
                )

    if vertex_count > 65535:
        return Indices(4, (ctypes.c_uint * len(values))(*values))
    return Indices(2, (ctypes.c_ushort * len(values))(*values))


def _get_morph_data(
    document: Document,
    buffers: BufferSource,
    target: dict,
    semantic: str,
    vertex_count: int,
    matrix: Optional[mathutils.Matrix],
    what: str,
) -> Optional[List[Vec3]]:
    if target.get(semantic) is None:
        return None
    # all morph targets are vec3 f32, sparse or not
    deltas = accessor.read(
        document, buffers, target[semantic], Shape.VEC3, (ComponentType.F32,)
    )
    if len(deltas) != vertex_count:
        raise CardinalityMismatch(
            f"{what}.{semantic}: {len(deltas)} deltas for {vertex_count} vertices"
        )
    if matrix is None:
        return deltas
    m = matrix.to_3x3()
    return [tuple(m @ Vector(d)) for d in deltas]


def get_morph_targets(
    document: Document,
    primitive: dict,
    buffers: BufferSource,
    vertex_count: int,
    matrix: Optional[mathutils.Matrix],
    what: str,
) -> List[MorphTarget]:
    targets = []
    for i, target in enumerate(primitive.get("targets") or []):
        target_what = f"{what}.targets[{i}]"
        targets.append(
            MorphTarget(
                positions=_get_morph_data(
                    document, buffers, target, "POSITION", vertex_count, matrix, target_what
                ),
                normals=_get_morph_data(
                    document, buffers, target, "NORMAL", vertex_count, matrix, target_what
                ),
                tangents=_get_morph_data(
                    document, buffers, target, "TANGENT", vertex_count, matrix, target_what
                ),
            )
        )
    return targets


def get(
    document: Document,
    primitive: dict,
    buffers: BufferSource,
    has_bones: bool,
    settings: Settings,
    *,
    matrix: Optional[mathutils.Matrix] = None,
    joint_count: Optional[int] = None,
    what: str = "primitive",
) -> Primitive:
    material = primitive.get("material")
    if material is not None and not 0 <= material < len(document.get("materials") or []):
        raise ConvertError(f"{what}: material {material} is not defined")

    vertex_attributes = assemble(
        document,
        primitive,
        buffers,
        has_bones,
        matrix=matrix,
        weights_format=settings.weights_format,
        joint_count=joint_count,
        what=what,
    )
    vertex_count = vertex_attributes.vertex_count
    indices = get_indices(document, primitive, buffers, vertex_count, what)
    morph_targets = get_morph_targets(
        document, primitive, buffers, vertex_count, matrix, what
    )

    return Primitive(
        material=material,
        mode=primitive.get("mode", TRIANGLES),
        vertex_attributes=vertex_attributes,
        indices=indices,
        morph_targets=morph_targets,
    )
