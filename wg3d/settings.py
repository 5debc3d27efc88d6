from typing import NamedTuple, Tuple
import mathutils
from mathutils import Matrix


WEIGHTS_FORMATS = ("f32", "u16")

# glTF: +Y up, +Z forward, -X right
SOURCE_AXES = {
    (1, 0, 0): "left",
    (-1, 0, 0): "right",
    (0, 1, 0): "up",
    (0, -1, 0): "down",
    (0, 0, 1): "forward",
    (0, 0, -1): "back",
}

# 180 degree turn around +Y, glTF front (+Z) faces -Z
ROTATE_Y_180 = Matrix(
    [
        [-1.0000, 0.0000, 0.0000, 0.0000],
        [0.0000, 1.0000, 0.0000, 0.0000],
        [0.0000, 0.0000, -1.0000, 0.0000],
        [0.0000, 0.0000, 0.0000, 1.0000],
    ],
)

EPSILON = 1e-5


def _axis_name(row) -> str:
    key = tuple(round(v) for v in row)
    if key in SOURCE_AXES and all(abs(v - k) < EPSILON for v, k in zip(row, key)):
        return SOURCE_AXES[key]
    return "({:g}, {:g}, {:g})".format(*row)


class Settings(NamedTuple):
    # rotation or reflection, joints and keyframes are conjugated by it
    basis: mathutils.Matrix = Matrix.Identity(4)
    global_scale: float = 1.0
    weights_format: str = "f32"  # f32 | u16
    apply_node_transforms: bool = True

    def matrix(self) -> mathutils.Matrix:
        if self.weights_format not in WEIGHTS_FORMATS:
            raise ValueError(f"unknown weights format: {self.weights_format}")
        if not self.global_scale > 0:
            raise ValueError(f"global scale must be positive: {self.global_scale}")
        linear = self.basis.to_3x3()
        product = linear @ linear.transposed()
        for i in range(3):
            for j in range(3):
                if abs(product[i][j] - (1.0 if i == j else 0.0)) > EPSILON:
                    raise ValueError("basis must be a rotation or a reflection")
        return self.basis.to_4x4() @ Matrix.Scale(self.global_scale, 4)

    def axes(self) -> Tuple[str, str, str]:
        """
        the source direction each output axis points to
        """
        linear = self.basis.to_3x3()
        # output axis i is row i of an orthogonal basis, in source space
        return tuple(_axis_name(linear[i]) for i in range(3))
