import struct
from typing import Sequence, Tuple
import mathutils
from mathutils import Matrix, Quaternion, Vector

from .errors import ConvertError, NonUniformScaling

MAX_ULPS = 4


def to_tuple(v: mathutils.Vector) -> Tuple[float, ...]:
    return tuple(v)


def from_column_major(m16: Sequence[float]) -> mathutils.Matrix:
    return Matrix(
        [
            [m16[0], m16[4], m16[8], m16[12]],
            [m16[1], m16[5], m16[9], m16[13]],
            [m16[2], m16[6], m16[10], m16[14]],
            [m16[3], m16[7], m16[11], m16[15]],
        ]
    )


def quaternion(xyzw: Sequence[float]) -> mathutils.Quaternion:
    # glTF xyzw, mathutils wxyz
    x, y, z, w = xyzw
    return Quaternion((w, x, y, z))


def to_xyzw(q: mathutils.Quaternion) -> Tuple[float, float, float, float]:
    return (q.x, q.y, q.z, q.w)


def node_matrix(node: dict) -> mathutils.Matrix:
    if "matrix" in node:
        return from_column_major(node["matrix"])
    t = Matrix.Translation(Vector(node.get("translation", (0, 0, 0))))
    r = quaternion(node.get("rotation", (0, 0, 0, 1))).to_matrix().to_4x4()
    s = Matrix.Diagonal(Vector(node.get("scale", (1, 1, 1)))).to_4x4()
    return t @ r @ s


def node_decomposed(
    node: dict,
) -> Tuple[Tuple[float, float, float], Tuple[float, float, float, float], Tuple[float, float, float]]:
    """
    translation, rotation(xyzw), scale
    """
    if "matrix" in node:
        t, r, s = from_column_major(node["matrix"]).decompose()
        return to_tuple(t), to_xyzw(r), to_tuple(s)
    return (
        tuple(node.get("translation", (0.0, 0.0, 0.0))),
        tuple(node.get("rotation", (0.0, 0.0, 0.0, 1.0))),
        tuple(node.get("scale", (1.0, 1.0, 1.0))),
    )


def _f32_bits(value: float) -> int:
    try:
        return struct.unpack("<i", struct.pack("<f", value))[0]
    except (OverflowError, struct.error) as e:
        raise ConvertError(f"{value!r} is not an f32") from e


def ulps_eq(a: float, b: float, max_ulps: int = MAX_ULPS) -> bool:
    if a == b:
        return True
    if (a < 0) != (b < 0):
        return False
    return abs(_f32_bits(a) - _f32_bits(b)) <= max_ulps


def uniform_scale(scale: Sequence[float], what: str) -> float:
    x, y, z = scale
    try:
        uniform = ulps_eq(x, y) and ulps_eq(x, z)
    except ConvertError as e:
        raise NonUniformScaling(f"{what}: {e}") from e
    if not uniform:
        raise NonUniformScaling(f"{what}: scale ({x}, {y}, {z})")
    return x


class BasisChange:
    """
    Moves joint rest poses, inverse bind matrices and keyframes into the space
    the vertices are converted to: a transform T becomes M @ T @ M^-1.

    M is an orthogonal basis times a uniform scale, so a rest pose keeps its
    shape: translation -> M3 @ t, rotation -> r q r*, scale unchanged.
    """

    def __init__(self, matrix: mathutils.Matrix) -> None:
        self.matrix = matrix.to_4x4()
        self.inverted = self.matrix.inverted()
        self.linear = self.matrix.to_3x3()
        rotation = self.linear.normalized()
        # a reflection conjugates the same way as its rotation part
        if rotation.determinant() < 0:
            rotation = rotation @ Matrix.Scale(-1.0, 3)
        self.rotation = rotation.to_quaternion()

    def translation(self, t: Sequence[float]) -> Tuple[float, float, float]:
        return to_tuple(self.linear @ Vector(t))

    def rotation_xyzw(self, xyzw: Sequence[float]) -> Tuple[float, float, float, float]:
        # linear in q, spline tangent stubs convert the same way
        return to_xyzw(self.rotation @ quaternion(xyzw) @ self.rotation.conjugated())

    def transform(self, columns: Sequence[Sequence[float]]) -> Tuple[Tuple[float, ...], ...]:
        m = Matrix(columns).transposed()
        return tuple(tuple(c) for c in (self.matrix @ m @ self.inverted).col)
