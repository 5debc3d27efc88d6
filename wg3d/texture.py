import enum
import logging
from typing import List, NamedTuple, Optional

from .buffer import BufferSource
from .errors import ConvertError, MissingBuffer, MissingImageBuffer
from .gltf import Document, get_item

logger = logging.getLogger(__name__)


class MagFilter(enum.IntEnum):
    NEAREST = 9728
    LINEAR = 9729


class MinFilter(enum.IntEnum):
    NEAREST = 9728
    LINEAR = 9729
    NEAREST_MIPMAP_NEAREST = 9984
    LINEAR_MIPMAP_NEAREST = 9985
    NEAREST_MIPMAP_LINEAR = 9986
    LINEAR_MIPMAP_LINEAR = 9987


class WrappingMode(enum.IntEnum):
    CLAMP_TO_EDGE = 33071
    MIRRORED_REPEAT = 33648
    REPEAT = 10497


class Texture(NamedTuple):
    name: str
    mag_filter: MagFilter
    min_filter: MinFilter
    wrap_s: WrappingMode
    wrap_t: WrappingMode
    mime_type: Optional[str]
    # embedded image bytes, not decoded
    data: Optional[bytes]
    # external image
    uri: Optional[str]


def _sniff_mime_type(data: bytes) -> Optional[str]:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    return None


def _enum(cls, value, default, what: str):
    if value is None:
        return default
    try:
        return cls(value)
    except ValueError:
        raise ConvertError(f"{what}: unknown {cls.__name__} {value}")


def get_texture(document: Document, index: int, buffers: BufferSource) -> Texture:
    what = f"textures[{index}]"
    texture = get_item(document, "textures", index)
    sampler = {}
    if texture.get("sampler") is not None:
        sampler = get_item(document, "samplers", texture["sampler"])

    image_index = texture.get("source")
    if image_index is None:
        raise MissingImageBuffer(f"{what}: no source image")
    image = get_item(document, "images", image_index)

    data = None
    uri = None
    mime_type = image.get("mimeType")
    if image.get("bufferView") is not None:
        bv = get_item(document, "bufferViews", image["bufferView"])
        try:
            data = bytes(
                buffers.slice(
                    bv["buffer"], bv.get("byteOffset", 0), bv["byteLength"]
                )
            )
        except (MissingBuffer, KeyError) as e:
            raise MissingImageBuffer(f"{what}: images[{image_index}]: {e}")
        if mime_type is None:
            mime_type = _sniff_mime_type(data)
    elif image.get("uri") is not None:
        uri = image["uri"]
    else:
        raise MissingImageBuffer(f"{what}: images[{image_index}] has no data")

    name = texture.get("name") or image.get("name") or uri or f"texture{index}"
    logger.debug("%s %s: %s", what, name, mime_type)
    return Texture(
        name=name,
        mag_filter=_enum(MagFilter, sampler.get("magFilter"), MagFilter.NEAREST, what),
        min_filter=_enum(MinFilter, sampler.get("minFilter"), MinFilter.NEAREST, what),
        wrap_s=_enum(WrappingMode, sampler.get("wrapS"), WrappingMode.REPEAT, what),
        wrap_t=_enum(WrappingMode, sampler.get("wrapT"), WrappingMode.REPEAT, what),
        mime_type=mime_type,
        data=data,
        uri=uri,
    )


def get(document: Document, buffers: BufferSource) -> List[Texture]:
    return [
        get_texture(document, i, buffers)
        for i in range(len(document.get("textures") or []))
    ]
