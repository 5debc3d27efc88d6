from typing import TypedDict, List, Optional, Tuple


class Axes(TypedDict):
    x: str
    y: str
    z: str


class Asset(TypedDict):
    version: str
    generator: str
    axes: Axes


class BufferView(TypedDict):
    name: str  # must unique !
    byteOffset: int
    byteLength: int


class Attribute(TypedDict):
    vertexAttribute: str  # position | normal | tangent | tex0 | tex1 | blendWeights | blendIndices
    format: str  # f32 | u16 | u32
    dimension: int  # 1 2 3 4


class Stream(TypedDict):
    bufferView: int
    stride: int
    attributes: List[Attribute]


class Indices(TypedDict):
    stride: int  # 2 | 4
    bufferView: int


class MorphTarget(TypedDict):
    position: Optional[int]  # bufferView of f32 x 3
    normal: Optional[int]
    tangent: Optional[int]


class SubMesh(TypedDict):
    material: int  # -1 for the default material
    mode: int
    drawCount: int
    vertexCount: int
    vertexStreams: List[Stream]
    indices: Indices
    morphTargets: List[MorphTarget]


class Mesh(TypedDict):
    name: str
    node: int
    skin: int  # -1 for static
    weights: List[float]
    subMeshes: List[SubMesh]


class Bone(TypedDict):
    name: str
    node: int
    parent: int  # -1 for root
    translation: Tuple[float, float, float]
    rotation: Tuple[float, float, float, float]
    scale: float
    inverseBindMatrix: List[float]  # column major 16


class Skin(TypedDict):
    name: str
    root: int
    bones: List[Bone]


class Channel(TypedDict):
    skin: int
    joint: int
    path: str  # translation | rotation | scale | weights
    interpolation: str
    count: int
    times: int  # bufferView of f32
    values: int  # bufferView of f32 x (3 | 4 | 1)


class Animation(TypedDict):
    name: str
    channels: List[Channel]


class Texture(TypedDict):
    name: str
    mimeType: Optional[str]
    bufferView: int  # -1 for external image
    uri: Optional[str]
    magFilter: int
    minFilter: int
    wrapS: int
    wrapT: int


class TextureRef(TypedDict):
    index: int
    texCoord: int


class Material(TypedDict):
    name: str
    alphaMode: str
    alphaCutoff: float
    doubleSided: bool
    color: Tuple[float, float, float, float]
    colorTexture: Optional[TextureRef]
    metallic: float
    roughness: float
    metallicRoughnessTexture: Optional[TextureRef]
    normalTexture: Optional[TextureRef]
    normalScale: float
    occlusionTexture: Optional[TextureRef]
    occlusionStrength: float
    emissive: Optional[Tuple[float, float, float]]
    emissiveTexture: Optional[TextureRef]


class Root(TypedDict):
    asset: Asset
    bufferViews: List[BufferView]
    textures: List[Texture]
    materials: List[Material]
    meshes: List[Mesh]
    skins: List[Skin]
    animations: List[Animation]
