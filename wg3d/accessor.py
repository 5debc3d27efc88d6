"""
Decode glTF accessors into lists of python values.

SCALAR -> value, VECn -> n-tuple, MAT4 -> 4 column tuples (glTF is column major).
"""

import enum
import logging
import struct
from typing import Any, Callable, Collection, List, NamedTuple, Optional

from .buffer import BufferSource
from .errors import (
    ConvertError,
    UnsupportedDataType,
    UnsupportedDimensions,
    BufferOutOfBounds,
)
from .gltf import Document, get_item

logger = logging.getLogger(__name__)


class ComponentType(enum.IntEnum):
    I8 = 5120
    U8 = 5121
    I16 = 5122
    U16 = 5123
    U32 = 5125
    F32 = 5126

    @property
    def format(self) -> str:
        return _FORMATS[self]

    @property
    def size(self) -> int:
        return struct.calcsize(_FORMATS[self])


_FORMATS = {
    ComponentType.I8: "b",
    ComponentType.U8: "B",
    ComponentType.I16: "h",
    ComponentType.U16: "H",
    ComponentType.U32: "I",
    ComponentType.F32: "f",
}

INDEX_TYPES = (ComponentType.U8, ComponentType.U16, ComponentType.U32)
# f32 plus the integer types that may be normalized to [0, 1]
UNORM_TYPES = (ComponentType.F32, ComponentType.U8, ComponentType.U16)
# rotations and morph weights
DENORMALIZE_TYPES = (
    ComponentType.F32,
    ComponentType.U8,
    ComponentType.I16,
    ComponentType.U16,
)


class Shape(enum.Enum):
    SCALAR = "SCALAR"
    VEC2 = "VEC2"
    VEC3 = "VEC3"
    VEC4 = "VEC4"
    MAT4 = "MAT4"

    @property
    def arity(self) -> int:
        return _ARITY[self]


_ARITY = {
    Shape.SCALAR: 1,
    Shape.VEC2: 2,
    Shape.VEC3: 3,
    Shape.VEC4: 4,
    Shape.MAT4: 16,
}


class View(NamedTuple):
    buffer: int
    byte_offset: int
    byte_length: int
    byte_stride: Optional[int]

    @staticmethod
    def from_document(document: Document, index: int) -> "View":
        bv = get_item(document, "bufferViews", index)
        try:
            return View(
                buffer=int(bv["buffer"]),
                byte_offset=int(bv.get("byteOffset", 0)),
                byte_length=int(bv["byteLength"]),
                byte_stride=bv.get("byteStride"),
            )
        except KeyError as e:
            raise ConvertError(f"bufferViews[{index}] missing {e}")


class Sparse(NamedTuple):
    count: int
    indices: View
    indices_offset: int
    indices_type: ComponentType
    values: View
    values_offset: int


class Accessor(NamedTuple):
    index: int
    count: int
    component_type: ComponentType
    shape: Shape
    byte_offset: int
    view: Optional[View]
    sparse: Optional[Sparse]

    @property
    def element_size(self) -> int:
        return self.component_type.size * self.shape.arity

    @staticmethod
    def from_document(document: Document, index: int) -> "Accessor":
        a = get_item(document, "accessors", index)
        try:
            component_type = ComponentType(a["componentType"])
        except ValueError:
            raise UnsupportedDataType(
                f"accessors[{index}]: componentType {a['componentType']}"
            )
        except KeyError:
            raise ConvertError(f"accessors[{index}] missing componentType")
        try:
            shape = Shape(a["type"])
        except ValueError:
            raise UnsupportedDimensions(f"accessors[{index}]: type {a['type']}")
        except KeyError:
            raise ConvertError(f"accessors[{index}] missing type")

        view = None
        if a.get("bufferView") is not None:
            view = View.from_document(document, a["bufferView"])

        sparse = None
        if a.get("sparse"):
            s = a["sparse"]
            try:
                indices_type = ComponentType(s["indices"]["componentType"])
                sparse = Sparse(
                    count=_count(s["count"], f"accessors[{index}].sparse"),
                    indices=View.from_document(document, s["indices"]["bufferView"]),
                    indices_offset=int(s["indices"].get("byteOffset", 0)),
                    indices_type=indices_type,
                    values=View.from_document(document, s["values"]["bufferView"]),
                    values_offset=int(s["values"].get("byteOffset", 0)),
                )
            except KeyError as e:
                raise ConvertError(f"accessors[{index}].sparse missing {e}")
            except ValueError:
                raise UnsupportedDataType(
                    f"accessors[{index}].sparse: index componentType {s['indices']['componentType']}"
                )

        if "count" not in a:
            raise ConvertError(f"accessors[{index}] missing count")

        return Accessor(
            index=index,
            count=_count(a["count"], f"accessors[{index}]"),
            component_type=component_type,
            shape=shape,
            byte_offset=int(a.get("byteOffset", 0)),
            view=view,
            sparse=sparse,
        )


def _count(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConvertError(f"{what}: bad count {value!r}")
    return value


def normalizer(component_type: ComponentType) -> Callable[[float], float]:
    if component_type == ComponentType.F32:
        return float
    if component_type == ComponentType.U8:
        return lambda v: v / 255.0
    if component_type == ComponentType.U16:
        return lambda v: v / 65535.0
    if component_type == ComponentType.I8:
        return lambda v: max(v / 127.0, -1.0)
    if component_type == ComponentType.I16:
        return lambda v: max(v / 32767.0, -1.0)
    raise UnsupportedDataType(f"{component_type.name} can not be normalized")


def _converter(
    component_type: ComponentType, shape: Shape, normalize: bool
) -> Callable[[tuple], Any]:
    """
    resolved once per accessor, applied per element
    """
    if shape == Shape.MAT4:
        if normalize:
            norm = normalizer(component_type)
            return lambda t: tuple(
                tuple(norm(v) for v in t[i : i + 4]) for i in range(0, 16, 4)
            )
        return lambda t: (t[0:4], t[4:8], t[8:12], t[12:16])

    if shape == Shape.SCALAR:
        if normalize:
            norm = normalizer(component_type)
            return lambda t: norm(t[0])
        return lambda t: t[0]

    if normalize:
        norm = normalizer(component_type)
        return lambda t: tuple(norm(v) for v in t)
    return lambda t: t


def _zero(component_type: ComponentType, shape: Shape, normalize: bool) -> Any:
    zero = 0.0 if normalize or component_type == ComponentType.F32 else 0
    if shape == Shape.SCALAR:
        return zero
    if shape == Shape.MAT4:
        return ((zero,) * 4,) * 4
    return (zero,) * shape.arity


def _read_view(
    buffers: BufferSource,
    view: View,
    byte_offset: int,
    count: int,
    component_type: ComponentType,
    shape: Shape,
    normalize: bool,
    what: str,
) -> List[Any]:
    size = component_type.size * shape.arity
    stride = view.byte_stride or size
    if stride < size:
        raise ConvertError(f"{what}: byteStride {stride} < element size {size}")
    if count == 0:
        return []
    end = byte_offset + stride * (count - 1) + size
    if byte_offset < 0 or end > view.byte_length:
        raise BufferOutOfBounds(
            f"{what}: needs {end} bytes, bufferView has {view.byte_length}"
        )
    data = buffers.slice(view.buffer, view.byte_offset, view.byte_length)

    element = struct.Struct("<" + component_type.format * shape.arity)
    convert = _converter(component_type, shape, normalize)
    if stride == size:
        values = element.iter_unpack(data[byte_offset:end])
    else:
        values = (
            element.unpack_from(data, byte_offset + i * stride) for i in range(count)
        )
    return [convert(v) for v in values]


def decode(
    accessor: Accessor,
    buffers: BufferSource,
    shape: Shape,
    component_types: Collection[ComponentType],
    *,
    normalize: bool = False,
) -> List[Any]:
    """
    Decode all elements of accessor.

    Raises UnsupportedDimensions / UnsupportedDataType when the accessor does
    not have the shape and one of the component types the caller expects.
    Integer values are mapped to float only when normalize is requested.
    """
    what = f"accessors[{accessor.index}]"
    if accessor.shape != shape:
        raise UnsupportedDimensions(
            f"{what}: {accessor.shape.value}, expected {shape.value}"
        )
    if accessor.component_type not in component_types:
        raise UnsupportedDataType(
            f"{what}: {accessor.component_type.name}, expected {'|'.join(t.name for t in component_types)}"
        )

    if accessor.view is not None:
        values = _read_view(
            buffers,
            accessor.view,
            accessor.byte_offset,
            accessor.count,
            accessor.component_type,
            shape,
            normalize,
            what,
        )
    else:
        # zero filled, sparse may override
        values = [_zero(accessor.component_type, shape, normalize)] * accessor.count

    sparse = accessor.sparse
    if sparse:
        if sparse.indices_type not in INDEX_TYPES:
            raise UnsupportedDataType(
                f"{what}.sparse: index {sparse.indices_type.name}"
            )
        indices = _read_view(
            buffers,
            sparse.indices,
            sparse.indices_offset,
            sparse.count,
            sparse.indices_type,
            Shape.SCALAR,
            False,
            f"{what}.sparse.indices",
        )
        overrides = _read_view(
            buffers,
            sparse.values,
            sparse.values_offset,
            sparse.count,
            accessor.component_type,
            shape,
            normalize,
            f"{what}.sparse.values",
        )
        for i, value in zip(indices, overrides):
            if i >= accessor.count:
                raise ConvertError(
                    f"{what}.sparse: index {i} >= count {accessor.count}"
                )
            values[i] = value

    logger.debug(
        "%s: %d x %s %s", what, len(values), accessor.component_type.name, shape.value
    )
    return values


def read(
    document: Document,
    buffers: BufferSource,
    index: int,
    shape: Shape,
    component_types: Collection[ComponentType],
    *,
    normalize: bool = False,
) -> List[Any]:
    accessor = Accessor.from_document(document, index)
    return decode(accessor, buffers, shape, component_types, normalize=normalize)
