"""
glTF 2.0 -> WG3D converter.

    document, buffers = gltf.load(pathlib.Path("CesiumMan.glb"))
    model = convert.convert(document, buffers, Settings(basis=ROTATE_Y_180))
    serialization.serialize(pathlib.Path("CesiumMan.wg3d"), model)
"""

from . import convert
from . import gltf
from . import serialization
from .buffer import BufferSource
from .convert import Model
from .errors import ConvertError
from .settings import ROTATE_Y_180, Settings

__all__ = [
    "convert",
    "gltf",
    "serialization",
    "BufferSource",
    "Model",
    "ConvertError",
    "ROTATE_Y_180",
    "Settings",
]
