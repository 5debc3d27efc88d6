import enum
import logging
from typing import List, NamedTuple, Optional, Tuple

from .errors import ConvertError, MissingImageBuffer
from .gltf import Document, get_item
from .texture import Texture

logger = logging.getLogger(__name__)


class AlphaMode(enum.Enum):
    OPAQUE = "OPAQUE"
    MASK = "MASK"
    BLEND = "BLEND"


class TextureRef(NamedTuple):
    texture: int
    tex_coord: int
    name: str


class Material(NamedTuple):
    name: str
    alpha_mode: AlphaMode
    alpha_cutoff: float
    double_sided: bool
    base_color: Tuple[float, float, float, float]
    base_color_texture: Optional[TextureRef]
    metallic: float
    roughness: float
    metallic_roughness_texture: Optional[TextureRef]
    normal_texture: Optional[TextureRef]
    normal_scale: float
    occlusion_texture: Optional[TextureRef]
    occlusion_strength: float
    emissive: Optional[Tuple[float, float, float]]  # None when black
    emissive_texture: Optional[TextureRef]


def _texture_ref(
    info: Optional[dict], textures: List[Texture], what: str
) -> Optional[TextureRef]:
    if not info:
        return None
    index = info.get("index")
    if not isinstance(index, int) or not 0 <= index < len(textures):
        raise MissingImageBuffer(f"{what}: texture {index} is not defined")
    return TextureRef(index, info.get("texCoord", 0), textures[index].name)


def get_material(document: Document, index: int, textures: List[Texture]) -> Material:
    what = f"materials[{index}]"
    material = get_item(document, "materials", index)
    pbr = material.get("pbrMetallicRoughness") or {}
    try:
        alpha_mode = AlphaMode(material.get("alphaMode", "OPAQUE"))
    except ValueError:
        raise ConvertError(f"{what}: unknown alphaMode {material.get('alphaMode')}")

    normal = material.get("normalTexture")
    occlusion = material.get("occlusionTexture")
    emissive = tuple(material.get("emissiveFactor", (0.0, 0.0, 0.0)))

    return Material(
        name=material.get("name") or f"material{index}",
        alpha_mode=alpha_mode,
        alpha_cutoff=material.get("alphaCutoff", 0.5),
        double_sided=material.get("doubleSided", False),
        base_color=tuple(pbr.get("baseColorFactor", (1.0, 1.0, 1.0, 1.0))),
        base_color_texture=_texture_ref(pbr.get("baseColorTexture"), textures, what),
        metallic=pbr.get("metallicFactor", 1.0),
        roughness=pbr.get("roughnessFactor", 1.0),
        metallic_roughness_texture=_texture_ref(
            pbr.get("metallicRoughnessTexture"), textures, what
        ),
        normal_texture=_texture_ref(normal, textures, what),
        normal_scale=(normal or {}).get("scale", 1.0),
        occlusion_texture=_texture_ref(occlusion, textures, what),
        occlusion_strength=(occlusion or {}).get("strength", 1.0),
        emissive=None if emissive == (0.0, 0.0, 0.0) else emissive,
        emissive_texture=_texture_ref(material.get("emissiveTexture"), textures, what),
    )


def get(document: Document, textures: List[Texture]) -> List[Material]:
    return [
        get_material(document, i, textures)
        for i in range(len(document.get("materials") or []))
    ]
