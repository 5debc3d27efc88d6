import base64
import binascii
import json
import logging
import pathlib
import struct
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from .buffer import BufferSource
from .errors import ConvertError, BufferOutOfBounds

logger = logging.getLogger(__name__)

GLB_MAGIC = b"glTF"
CHUNK_TYPE_JSON = 0x4E4F534A  # b"JSON"
CHUNK_TYPE_BIN = 0x004E4942  # b"BIN\0"


class BufferView(TypedDict, total=False):
    buffer: int
    byteOffset: int
    byteLength: int
    byteStride: int


class Node(TypedDict, total=False):
    name: str
    children: List[int]
    matrix: List[float]  # column major
    translation: Tuple[float, float, float]
    rotation: Tuple[float, float, float, float]  # xyzw
    scale: Tuple[float, float, float]
    mesh: int
    skin: int
    weights: List[float]


class Skin(TypedDict, total=False):
    name: str
    joints: List[int]
    skeleton: int
    inverseBindMatrices: int


Document = Dict[str, Any]


def get_item(document: Document, key: str, index: Optional[int]) -> Dict[str, Any]:
    """
    document[key][index] with ConvertError instead of KeyError/IndexError
    """
    items = document.get(key) or []
    if not isinstance(index, int) or index < 0 or index >= len(items):
        raise ConvertError(f"{key}[{index}] is not defined")
    return items[index]


def _parse_json(data: bytes, what: str) -> Document:
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ConvertError(f"{what}: {e}") from e
    if not isinstance(document, dict):
        raise ConvertError(f"{what}: not a JSON object")
    return document


def _read_uri(uri: str, basedir: pathlib.Path) -> bytes:
    if uri.startswith("data:"):
        try:
            _, b64 = uri.split(",", 1)
            return base64.b64decode(b64, validate=True)
        except (ValueError, binascii.Error) as e:
            raise ConvertError(f"bad data uri: {e}") from e
    return (basedir / uri).read_bytes()


def parse_glb(data: bytes) -> Tuple[Document, Optional[bytes]]:
    if len(data) < 12:
        raise ConvertError("bad GLB header")
    magic, version, length = struct.unpack_from("<4sII", data, 0)
    if magic != GLB_MAGIC:
        raise ConvertError(f"bad GLB magic: {magic!r}")
    if version != 2:
        raise ConvertError(f"only GLB v2 supported: {version}")
    if length > len(data):
        raise BufferOutOfBounds(f"GLB declares {length} bytes, got {len(data)}")

    document = None
    bin_chunk = None
    offset = 12
    while offset + 8 <= length:
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        offset += 8
        if offset + chunk_length > length:
            raise BufferOutOfBounds(
                f"GLB chunk of {chunk_length} bytes at {offset} exceeds {length}"
            )
        chunk = data[offset : offset + chunk_length]
        offset += chunk_length
        if chunk_type == CHUNK_TYPE_JSON:
            document = _parse_json(bytes(chunk), "GLB JSON chunk")
        elif chunk_type == CHUNK_TYPE_BIN and bin_chunk is None:
            bin_chunk = bytes(chunk)
    if document is None:
        raise ConvertError("GLB missing JSON chunk")
    return document, bin_chunk


def load_buffers(
    document: Document, basedir: pathlib.Path, bin_chunk: Optional[bytes] = None
) -> BufferSource:
    buffers: List[bytes] = []
    for i, buffer in enumerate(document.get("buffers") or []):
        uri = buffer.get("uri")
        if uri is None:
            data = bin_chunk or b""
        else:
            data = _read_uri(uri, basedir)
        byte_length = int(buffer.get("byteLength", len(data)))
        if len(data) < byte_length:
            raise BufferOutOfBounds(
                f"buffer {i} declares {byte_length} bytes, got {len(data)}"
            )
        logger.debug("buffer %d: %d bytes", i, len(data))
        buffers.append(data)
    return BufferSource(buffers)


def load(path: pathlib.Path) -> Tuple[Document, BufferSource]:
    """
    read .gltf or .glb
    """
    data = path.read_bytes()
    basedir = path.parent
    if data[:4] == GLB_MAGIC:
        document, bin_chunk = parse_glb(data)
    else:
        document = _parse_json(data, str(path))
        bin_chunk = None
    return document, load_buffers(document, basedir, bin_chunk)
