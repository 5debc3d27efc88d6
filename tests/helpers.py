"""Build small glTF documents and their binary buffer for tests."""
import struct
from typing import Any, Dict, List, Optional, Sequence

from wg3d.buffer import BufferSource

FORMATS = {5120: "b", 5121: "B", 5122: "h", 5123: "H", 5125: "I", 5126: "f"}
ARITY = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4, "MAT4": 16}

F32 = 5126
I8 = 5120
U8 = 5121
U16 = 5123
I16 = 5122
U32 = 5125


def pack(values: Sequence[Any], component_type: int, type_: str) -> bytes:
    element = struct.Struct("<" + FORMATS[component_type] * ARITY[type_])
    out = b""
    for v in values:
        if not isinstance(v, (tuple, list)):
            v = (v,)
        out += element.pack(*v)
    return out


class GltfBuilder:
    def __init__(self) -> None:
        self.bin = bytearray()
        self.document: Dict[str, Any] = {
            "asset": {"version": "2.0"},
            "buffers": [],
            "bufferViews": [],
            "accessors": [],
        }

    def add_view(self, data: bytes, stride: Optional[int] = None) -> int:
        self.bin += b"\0" * (-len(self.bin) % 4)
        view = {"buffer": 0, "byteOffset": len(self.bin), "byteLength": len(data)}
        if stride is not None:
            view["byteStride"] = stride
        self.bin += data
        self.document["bufferViews"].append(view)
        return len(self.document["bufferViews"]) - 1

    def add_accessor(
        self,
        values: Sequence[Any],
        component_type: int = F32,
        type_: str = "VEC3",
        **extra: Any,
    ) -> int:
        view = self.add_view(pack(values, component_type, type_))
        accessor = {
            "bufferView": view,
            "componentType": component_type,
            "type": type_,
            "count": len(values),
        }
        accessor.update(extra)
        self.document["accessors"].append(accessor)
        return len(self.document["accessors"]) - 1

    def add(self, key: str, item: Dict[str, Any]) -> int:
        items: List[Dict[str, Any]] = self.document.setdefault(key, [])
        items.append(item)
        return len(items) - 1

    def buffers(self) -> BufferSource:
        self.document["buffers"] = [{"byteLength": len(self.bin)}]
        return BufferSource([bytes(self.bin)])


def chain_nodes(count: int) -> List[Dict[str, Any]]:
    """node 0 -> node 1 -> ... -> node count-1"""
    nodes = [{"name": f"node{i}", "children": [i + 1]} for i in range(count - 1)]
    nodes.append({"name": f"node{count - 1}"})
    return nodes
