import enum
import logging
from typing import Any, List, NamedTuple, Optional, Tuple

from . import accessor
from .accessor import ComponentType, DENORMALIZE_TYPES, Shape
from .buffer import BufferSource
from .errors import CardinalityMismatch, ConvertError, InvalidJoint, UnorderedKeyframes
from .gltf import Document, get_item
from .skin import Skeleton, find_joint
from .transform import BasisChange, uniform_scale

logger = logging.getLogger(__name__)


class Interpolation(enum.Enum):
    STEP = "STEP"
    LINEAR = "LINEAR"
    CATMULLROMSPLINE = "CATMULLROMSPLINE"
    CUBICSPLINE = "CUBICSPLINE"

    @property
    def requires_tangent_stubs(self) -> bool:
        return self in (Interpolation.CATMULLROMSPLINE, Interpolation.CUBICSPLINE)


class Property(enum.Enum):
    TRANSLATION = "translation"
    ROTATION = "rotation"
    SCALE = "scale"
    WEIGHTS = "weights"


class Channel(NamedTuple):
    skin: int
    joint_index: int
    property: Property
    interpolation: Interpolation
    times: List[float]
    # translation, scale: (x, y, z), rotation: (x, y, z, w), weights: float
    values: List[Any]

    @property
    def keyframes(self) -> List[Tuple[float, Any]]:
        return list(zip(self.times, self.values))


class Animation(NamedTuple):
    name: str
    channels: List[Channel]

    @property
    def duration(self) -> float:
        return max((c.times[-1] for c in self.channels if c.times), default=0.0)


def pad_times(times: List[float], interpolation: Interpolation) -> List[float]:
    """
    spline modes get the first and the last timestamp appended again, as
    placeholders of the boundary tangents
    """
    if interpolation.requires_tangent_stubs and times:
        return times + [times[0], times[-1]]
    return list(times)


def _check_ascending(times: List[float], what: str):
    for i in range(1, len(times)):
        if times[i] < times[i - 1]:
            raise UnorderedKeyframes(f"{what}: t[{i}]={times[i]} < t[{i - 1}]={times[i - 1]}")


def get_values(
    document: Document,
    buffers: BufferSource,
    output: int,
    prop: Property,
    what: str,
    change: Optional[BasisChange] = None,
) -> List[Any]:
    if prop == Property.TRANSLATION:
        translations = accessor.read(
            document, buffers, output, Shape.VEC3, (ComponentType.F32,)
        )
        if change is not None:
            return [change.translation(t) for t in translations]
        return translations
    if prop == Property.SCALE:
        scales = accessor.read(
            document, buffers, output, Shape.VEC3, (ComponentType.F32,)
        )
        for i, s in enumerate(scales):
            uniform_scale(s, f"{what} key {i}")
        return scales
    if prop == Property.ROTATION:
        rotations = accessor.read(
            document, buffers, output, Shape.VEC4, DENORMALIZE_TYPES, normalize=True
        )
        if change is not None:
            return [change.rotation_xyzw(q) for q in rotations]
        return rotations
    return accessor.read(
        document, buffers, output, Shape.SCALAR, DENORMALIZE_TYPES, normalize=True
    )


def sample(
    document: Document,
    animation_index: int,
    channel_index: int,
    skeletons: List[Skeleton],
    buffers: BufferSource,
    change: Optional[BasisChange] = None,
) -> Channel:
    what = f"animations[{animation_index}].channels[{channel_index}]"
    animation = get_item(document, "animations", animation_index)
    channels = animation.get("channels") or []
    if channel_index < 0 or channel_index >= len(channels):
        raise ConvertError(f"{what} is not defined")
    channel = channels[channel_index]
    target = channel.get("target") or {}

    found = find_joint(skeletons, target.get("node"))
    if found is None:
        raise InvalidJoint(f"{what}: nodes[{target.get('node')}] is not a joint")
    skin, joint_index = found

    try:
        prop = Property(target.get("path"))
    except ValueError:
        raise ConvertError(f"{what}: unknown path {target.get('path')}")

    samplers = animation.get("samplers") or []
    sampler_index = channel.get("sampler")
    if not isinstance(sampler_index, int) or not 0 <= sampler_index < len(samplers):
        raise ConvertError(f"{what}: sampler {sampler_index} is not defined")
    sampler = samplers[sampler_index]
    try:
        interpolation = Interpolation(sampler.get("interpolation", "LINEAR"))
    except ValueError:
        raise ConvertError(f"{what}: unknown interpolation {sampler.get('interpolation')}")

    times = accessor.read(
        document, buffers, sampler.get("input"), Shape.SCALAR, (ComponentType.F32,)
    )
    _check_ascending(times, what)
    times = pad_times(times, interpolation)

    values = get_values(document, buffers, sampler.get("output"), prop, what, change)
    if len(values) != len(times):
        raise CardinalityMismatch(
            f"{what}: {len(times)} times ({interpolation.value}), {len(values)} values"
        )

    logger.debug(
        "%s: joint %d %s %s %d keys",
        what,
        joint_index,
        prop.value,
        interpolation.value,
        len(times),
    )
    return Channel(skin, joint_index, prop, interpolation, times, values)


def get_animation(
    document: Document,
    index: int,
    skeletons: List[Skeleton],
    buffers: BufferSource,
    change: Optional[BasisChange] = None,
) -> Animation:
    animation = get_item(document, "animations", index)
    name = animation.get("name") or f"animation{index}"
    channels = [
        sample(document, index, i, skeletons, buffers, change)
        for i in range(len(animation.get("channels") or []))
    ]
    return Animation(name, channels)


def get(
    document: Document,
    skeletons: List[Skeleton],
    buffers: BufferSource,
    change: Optional[BasisChange] = None,
) -> List[Animation]:
    return [
        get_animation(document, i, skeletons, buffers, change)
        for i in range(len(document.get("animations") or []))
    ]
