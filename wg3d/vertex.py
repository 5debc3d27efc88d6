"""
Per vertex records.

position, normal and tex0 are always present. tex1, tangent and skin (joints +
weights) are optional, which gives 8 record layouts. Every layout is a ctypes
Structure, so an assembled primitive is one contiguous interleaved stream.
"""

import ctypes
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Type
import mathutils
from mathutils import Vector

from . import accessor
from .accessor import ComponentType, Shape, UNORM_TYPES
from .buffer import BufferSource
from .errors import CardinalityMismatch, InvalidJoint, MissingAttributes
from .gltf import Document

logger = logging.getLogger(__name__)


class Float2(ctypes.Structure):
    _fields_ = [
        ("x", ctypes.c_float),
        ("y", ctypes.c_float),
    ]

    def __str__(self) -> str:
        return f"({self.x},{self.y})"


class Float3(ctypes.Structure):
    _fields_ = [
        ("x", ctypes.c_float),
        ("y", ctypes.c_float),
        ("z", ctypes.c_float),
    ]

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"

    @staticmethod
    def from_vector(v: mathutils.Vector) -> "Float3":
        return Float3(v.x, v.y, v.z)


class Float4(ctypes.Structure):
    _fields_ = [
        ("x", ctypes.c_float),
        ("y", ctypes.c_float),
        ("z", ctypes.c_float),
        ("w", ctypes.c_float),
    ]


Joints4 = ctypes.c_ushort * 4
Weights4 = ctypes.c_float * 4
WeightsU16 = ctypes.c_ushort * 4


class VertexSkin(ctypes.Structure):
    _fields_ = [
        ("weights", Weights4),
        ("joints", Joints4),
    ]


class VertexSkinU16(ctypes.Structure):
    """
    weights as 16bit fixed point, 65535 == 1.0
    """

    _fields_ = [
        ("weights", WeightsU16),
        ("joints", Joints4),
    ]


class VertexLayout(NamedTuple):
    tex1: bool
    tangent: bool
    bones: bool

    @property
    def name(self) -> str:
        name = "Vertex"
        if self.tex1:
            name += "Tex1"
        if self.tangent:
            name += "Tangent"
        if self.bones:
            name += "Skin"
        return name


_VERTEX_TYPES: Dict[Tuple[VertexLayout, str], Type[ctypes.Structure]] = {}


def vertex_type(layout: VertexLayout, weights_format: str = "f32") -> Type[ctypes.Structure]:
    key = (layout, weights_format)
    if key not in _VERTEX_TYPES:
        fields: List[Tuple[str, Any]] = [
            ("position", Float3),
            ("normal", Float3),
            ("tex0", Float2),
        ]
        if layout.tex1:
            fields.append(("tex1", Float2))
        if layout.tangent:
            fields.append(("tangent", Float4))
        if layout.bones:
            fields.append(
                ("skin", VertexSkinU16 if weights_format == "u16" else VertexSkin)
            )
        _VERTEX_TYPES[key] = type(layout.name, (ctypes.Structure,), {"_fields_": fields})
    return _VERTEX_TYPES[key]


class VertexAttributeSet(NamedTuple):
    layout: VertexLayout
    weights_format: str
    vertices: ctypes.Array

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    def memoryview(self) -> memoryview:
        return memoryview(self.vertices)


def quantize_weight(w: float) -> int:
    return min(max(int(round(w * 65535.0)), 0), 65535)


def _read(
    document: Document,
    buffers: BufferSource,
    attributes: Dict[str, int],
    semantic: str,
    shape: Shape,
    component_types,
    normalize: bool = False,
) -> List[Any]:
    return accessor.read(
        document, buffers, attributes[semantic], shape, component_types, normalize=normalize
    )


def assemble(
    document: Document,
    primitive: dict,
    buffers: BufferSource,
    has_bones: bool,
    *,
    matrix: Optional[mathutils.Matrix] = None,
    weights_format: str = "f32",
    joint_count: Optional[int] = None,
    what: str = "primitive",
) -> VertexAttributeSet:
    """
    Decode the attributes of a glTF primitive into one of the 8 vertex layouts.

    matrix, when given, moves position, normal and tangent into the target
    space. All decoded streams must have the length of POSITION.
    """
    attributes: Dict[str, int] = primitive.get("attributes") or {}
    for semantic in ("POSITION", "NORMAL", "TEXCOORD_0"):
        if semantic not in attributes:
            raise MissingAttributes(f"{what}: {semantic}")

    layout = VertexLayout(
        tex1="TEXCOORD_1" in attributes,
        tangent="TANGENT" in attributes,
        bones=has_bones,
    )
    if layout.bones:
        for semantic in ("JOINTS_0", "WEIGHTS_0"):
            if semantic not in attributes:
                raise MissingAttributes(f"{what}: {semantic}")

    f32 = (ComponentType.F32,)
    streams: Dict[str, List[Any]] = {
        "POSITION": _read(document, buffers, attributes, "POSITION", Shape.VEC3, f32),
        "NORMAL": _read(document, buffers, attributes, "NORMAL", Shape.VEC3, f32),
        "TEXCOORD_0": _read(
            document, buffers, attributes, "TEXCOORD_0", Shape.VEC2, UNORM_TYPES, True
        ),
    }
    if layout.tex1:
        streams["TEXCOORD_1"] = _read(
            document, buffers, attributes, "TEXCOORD_1", Shape.VEC2, UNORM_TYPES, True
        )
    if layout.tangent:
        streams["TANGENT"] = _read(document, buffers, attributes, "TANGENT", Shape.VEC4, f32)
    if layout.bones:
        streams["JOINTS_0"] = _read(
            document,
            buffers,
            attributes,
            "JOINTS_0",
            Shape.VEC4,
            (ComponentType.U8, ComponentType.U16),
        )
        streams["WEIGHTS_0"] = _read(
            document, buffers, attributes, "WEIGHTS_0", Shape.VEC4, UNORM_TYPES, True
        )

    count = len(streams["POSITION"])
    for semantic, stream in streams.items():
        if len(stream) != count:
            raise CardinalityMismatch(
                f"{what}: {semantic} has {len(stream)} elements, POSITION has {count}"
            )

    if joint_count is not None and layout.bones:
        for i, joints in enumerate(streams["JOINTS_0"]):
            if max(joints) >= joint_count:
                raise InvalidJoint(
                    f"{what}: vertex {i} joints {joints}, skin has {joint_count} joints"
                )

    if matrix is not None:
        normal_matrix = matrix.to_3x3().inverted_safe().transposed()
        tangent_matrix = matrix.to_3x3()

        def position(p):
            return Float3.from_vector(matrix @ Vector(p))

        def normal(n):
            return Float3.from_vector((normal_matrix @ Vector(n)).normalized())

        def tangent(t):
            v = (tangent_matrix @ Vector(t[:3])).normalized()
            return Float4(v.x, v.y, v.z, t[3])

    else:

        def position(p):
            return Float3(*p)

        normal = position

        def tangent(t):
            return Float4(*t)

    vertex_class = vertex_type(layout, weights_format)
    skin_class = VertexSkinU16 if weights_format == "u16" else VertexSkin
    vertices = (vertex_class * count)()
    for i in range(count):
        dst = vertices[i]
        dst.position = position(streams["POSITION"][i])
        dst.normal = normal(streams["NORMAL"][i])
        dst.tex0 = Float2(*streams["TEXCOORD_0"][i])
        if layout.tex1:
            dst.tex1 = Float2(*streams["TEXCOORD_1"][i])
        if layout.tangent:
            dst.tangent = tangent(streams["TANGENT"][i])
        if layout.bones:
            weights = streams["WEIGHTS_0"][i]
            if weights_format == "u16":
                weights = WeightsU16(*(quantize_weight(w) for w in weights))
            else:
                weights = Weights4(*weights)
            dst.skin = skin_class(weights, Joints4(*streams["JOINTS_0"][i]))

    logger.debug("%s: %d vertices, %s", what, count, layout.name)
    return VertexAttributeSet(layout, weights_format, vertices)
