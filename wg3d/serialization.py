import ctypes
import io
import json
import logging
import pathlib
import struct
from typing import Iterable, List, NamedTuple, Optional

from . import jsontype
from .animation import Animation
from .convert import Model
from .material import Material, TextureRef
from .mesh import Mesh
from .primitive import Primitive
from .skin import Skeleton
from .texture import Texture
from .vertex import VertexLayout

logger = logging.getLogger(__name__)

MAGIC = b"WG3D"
VERSION = 1


class Bin:
    def __init__(self) -> None:
        self.stream = io.BytesIO()
        self.bufferViews: List[jsontype.BufferView] = []
        self.offset = 0

    def push(self, name: str, data: memoryview) -> int:
        index = len(self.bufferViews)
        byteLength = data.nbytes
        bufferView = jsontype.BufferView(
            name=name,
            byteOffset=self.offset,
            byteLength=byteLength,
        )
        self.bufferViews.append(bufferView)
        self.stream.write(data)
        self.offset += byteLength
        # keep every view 4 byte aligned
        padding = -self.offset % 4
        if padding:
            self.stream.write(b"\0" * padding)
            self.offset += padding
        return index

    def push_floats(self, name: str, values: Iterable[float]) -> int:
        values = list(values)
        return self.push(name, memoryview((ctypes.c_float * len(values))(*values)))


class Chunk(NamedTuple):
    chunkType: bytes
    data: bytes


def pack_chunks(*chunks: Chunk) -> bytes:
    # header
    #
    # magic: char[4]
    # version: uint
    # byteLength: uint
    w = io.BytesIO()
    byteLength = 12
    for chunk in chunks:
        byteLength += 8 + len(chunk.data)

    # little endian binary format
    w.write(MAGIC)
    w.write(struct.pack("<I", VERSION))
    w.write(struct.pack("<I", byteLength))

    for chunk in chunks:
        if len(chunk.chunkType) != 4:
            raise ValueError(f"chunk type must be 4 bytes: {chunk.chunkType!r}")
        # chunkDataLength
        w.write(struct.pack("<I", len(chunk.data)))
        # chunkType
        w.write(chunk.chunkType)
        # chunkData
        w.write(chunk.data)

    return w.getvalue()


def write_chunks(dst: pathlib.Path, *chunks: Chunk) -> int:
    data = pack_chunks(*chunks)
    dst.write_bytes(data)
    return len(data)


def get_attributes(layout: VertexLayout, weights_format: str) -> List[jsontype.Attribute]:
    attributes = [
        jsontype.Attribute(vertexAttribute="position", format="f32", dimension=3),
        jsontype.Attribute(vertexAttribute="normal", format="f32", dimension=3),
        jsontype.Attribute(vertexAttribute="tex0", format="f32", dimension=2),
    ]
    if layout.tex1:
        attributes.append(
            jsontype.Attribute(vertexAttribute="tex1", format="f32", dimension=2)
        )
    if layout.tangent:
        attributes.append(
            jsontype.Attribute(vertexAttribute="tangent", format="f32", dimension=4)
        )
    if layout.bones:
        attributes.append(
            jsontype.Attribute(
                vertexAttribute="blendWeights", format=weights_format, dimension=4
            )
        )
        attributes.append(
            jsontype.Attribute(vertexAttribute="blendIndices", format="u16", dimension=4)
        )
    return attributes


def _texture_ref(ref: Optional[TextureRef]) -> Optional[jsontype.TextureRef]:
    if ref is None:
        return None
    return jsontype.TextureRef(index=ref.texture, texCoord=ref.tex_coord)


def _flatten(values) -> List[float]:
    flat = []
    for v in values:
        if isinstance(v, tuple):
            flat.extend(v)
        else:
            flat.append(v)
    return flat


class Serializer:
    def __init__(self) -> None:
        self.bin = Bin()

    def push_texture(self, i: int, texture: Texture) -> jsontype.Texture:
        bufferView = -1
        if texture.data is not None:
            bufferView = self.bin.push(f"texture{i}.image", memoryview(texture.data))
        return jsontype.Texture(
            name=texture.name,
            mimeType=texture.mime_type,
            bufferView=bufferView,
            uri=texture.uri,
            magFilter=int(texture.mag_filter),
            minFilter=int(texture.min_filter),
            wrapS=int(texture.wrap_s),
            wrapT=int(texture.wrap_t),
        )

    def push_material(self, material: Material) -> jsontype.Material:
        return jsontype.Material(
            name=material.name,
            alphaMode=material.alpha_mode.value,
            alphaCutoff=material.alpha_cutoff,
            doubleSided=material.double_sided,
            color=material.base_color,
            colorTexture=_texture_ref(material.base_color_texture),
            metallic=material.metallic,
            roughness=material.roughness,
            metallicRoughnessTexture=_texture_ref(material.metallic_roughness_texture),
            normalTexture=_texture_ref(material.normal_texture),
            normalScale=material.normal_scale,
            occlusionTexture=_texture_ref(material.occlusion_texture),
            occlusionStrength=material.occlusion_strength,
            emissive=material.emissive,
            emissiveTexture=_texture_ref(material.emissive_texture),
        )

    def push_primitive(self, name: str, prim: Primitive) -> jsontype.SubMesh:
        va = prim.vertex_attributes
        vert = self.bin.push(f"{name}.vert", va.memoryview())
        indx = self.bin.push(f"{name}.indx", memoryview(prim.indices.indices))
        morph_targets = []
        for i, target in enumerate(prim.morph_targets):

            def push_deltas(semantic, deltas):
                if deltas is None:
                    return None
                return self.bin.push_floats(f"{name}.target{i}.{semantic}", _flatten(deltas))

            morph_targets.append(
                jsontype.MorphTarget(
                    position=push_deltas("position", target.positions),
                    normal=push_deltas("normal", target.normals),
                    tangent=push_deltas("tangent", target.tangents),
                )
            )

        return jsontype.SubMesh(
            material=-1 if prim.material is None else prim.material,
            mode=prim.mode,
            drawCount=prim.indices.get_draw_count(),
            vertexCount=va.vertex_count,
            vertexStreams=[
                jsontype.Stream(
                    bufferView=vert,
                    stride=ctypes.sizeof(va.vertices._type_),
                    attributes=get_attributes(va.layout, va.weights_format),
                )
            ],
            indices=jsontype.Indices(stride=prim.indices.stride, bufferView=indx),
            morphTargets=morph_targets,
        )

    def push_mesh(self, i: int, mesh: Mesh) -> jsontype.Mesh:
        return jsontype.Mesh(
            name=mesh.name,
            node=mesh.node,
            skin=-1 if mesh.skin is None else mesh.skin,
            weights=mesh.weights or [],
            subMeshes=[
                self.push_primitive(f"mesh{i}.prim{j}", prim)
                for j, prim in enumerate(mesh.primitives)
            ],
        )

    def push_skin(self, skeleton: Skeleton) -> jsontype.Skin:
        return jsontype.Skin(
            name=skeleton.name,
            root=skeleton.root,
            bones=[
                jsontype.Bone(
                    name=joint.name,
                    node=joint.node,
                    parent=-1 if joint.parent is None else joint.parent,
                    translation=joint.translation,
                    rotation=joint.rotation,
                    scale=joint.scale,
                    inverseBindMatrix=_flatten(joint.inverse_bind_matrix),
                )
                for joint in skeleton.joints
            ],
        )

    def push_animation(self, i: int, animation: Animation) -> jsontype.Animation:
        channels = []
        for j, channel in enumerate(animation.channels):
            name = f"animation{i}.channel{j}"
            channels.append(
                jsontype.Channel(
                    skin=channel.skin,
                    joint=channel.joint_index,
                    path=channel.property.value,
                    interpolation=channel.interpolation.value,
                    count=len(channel.times),
                    times=self.bin.push_floats(f"{name}.times", channel.times),
                    values=self.bin.push_floats(f"{name}.values", _flatten(channel.values)),
                )
            )
        return jsontype.Animation(name=animation.name, channels=channels)

    def to_chunks(self, model: Model) -> List[Chunk]:
        json_data = jsontype.Root(
            asset=jsontype.Asset(
                version="1",
                generator="wg3d",
                axes=jsontype.Axes(
                    x=model.axes[0],
                    y=model.axes[1],
                    z=model.axes[2],
                ),
            ),
            bufferViews=self.bin.bufferViews,
            textures=[self.push_texture(i, t) for i, t in enumerate(model.textures)],
            materials=[self.push_material(m) for m in model.materials],
            meshes=[self.push_mesh(i, m) for i, m in enumerate(model.meshes)],
            skins=[self.push_skin(s) for s in model.skins],
            animations=[self.push_animation(i, a) for i, a in enumerate(model.animations)],
        )

        json_chunk = json.dumps(json_data).encode("utf-8")
        json_chunk += b" " * (-len(json_chunk) % 4)
        logger.debug("json chunk: %d bytes, bin chunk: %d bytes", len(json_chunk), self.bin.offset)

        return [
            Chunk(b"JSON", json_chunk),
            Chunk(b"BIN\0", self.bin.stream.getvalue()),
        ]

    def to_bytes(self, model: Model) -> bytes:
        return pack_chunks(*self.to_chunks(model))


def serialize(dst: pathlib.Path, model: Model) -> int:
    byteLength = write_chunks(dst, *Serializer().to_chunks(model))
    logger.info("%s: %d bytes", dst, byteLength)
    return byteLength
