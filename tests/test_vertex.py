import ctypes
import itertools
import unittest

from wg3d.errors import CardinalityMismatch, InvalidJoint, MissingAttributes
from wg3d.settings import ROTATE_Y_180
from wg3d.vertex import VertexLayout, assemble, quantize_weight, vertex_type

from .helpers import F32, U8, U16, GltfBuilder


def triangle(b, count=3, **extra):
    attributes = {
        "POSITION": b.add_accessor([(float(i), 2.0, 3.0) for i in range(count)]),
        "NORMAL": b.add_accessor([(1.0, 0.0, 0.0)] * count),
        "TEXCOORD_0": b.add_accessor([(0.5, 0.25)] * count, F32, "VEC2"),
    }
    attributes.update(extra)
    return {"attributes": attributes}


class LayoutTest(unittest.TestCase):
    def test_eight_layouts(self):
        types = {
            vertex_type(VertexLayout(*flags))
            for flags in itertools.product((False, True), repeat=3)
        }
        self.assertEqual(len(types), 8)

    def test_record_sizes(self):
        self.assertEqual(ctypes.sizeof(vertex_type(VertexLayout(False, False, False))), 32)
        self.assertEqual(ctypes.sizeof(vertex_type(VertexLayout(True, True, True))), 80)
        self.assertEqual(
            ctypes.sizeof(vertex_type(VertexLayout(False, False, True), "u16")), 48
        )

    def test_name(self):
        self.assertEqual(VertexLayout(False, True, True).name, "VertexTangentSkin")


class AssembleTest(unittest.TestCase):
    def test_required_only(self):
        b = GltfBuilder()
        prim = triangle(b)
        va = assemble(b.document, prim, b.buffers(), False)

        self.assertEqual(va.layout, VertexLayout(tex1=False, tangent=False, bones=False))
        self.assertEqual(va.vertex_count, 3)
        v = va.vertices[2]
        self.assertEqual((v.position.x, v.position.y, v.position.z), (2.0, 2.0, 3.0))
        self.assertEqual((v.tex0.x, v.tex0.y), (0.5, 0.25))

    def test_tangent_does_not_change_bones(self):
        b = GltfBuilder()
        prim = triangle(b, TANGENT=b.add_accessor([(0.0, 1.0, 0.0, -1.0)] * 3, F32, "VEC4"))
        va = assemble(b.document, prim, b.buffers(), False)
        self.assertEqual(va.layout, VertexLayout(tex1=False, tangent=True, bones=False))
        self.assertEqual(va.vertices[0].tangent.w, -1.0)

    def test_tex1_normalized(self):
        b = GltfBuilder()
        prim = triangle(b, TEXCOORD_1=b.add_accessor([(0, 65535)] * 3, U16, "VEC2"))
        va = assemble(b.document, prim, b.buffers(), False)
        self.assertTrue(va.layout.tex1)
        self.assertEqual((va.vertices[1].tex1.x, va.vertices[1].tex1.y), (0.0, 1.0))

    def test_bones(self):
        b = GltfBuilder()
        prim = triangle(
            b,
            JOINTS_0=b.add_accessor([(0, 1, 0, 0)] * 3, U8, "VEC4"),
            WEIGHTS_0=b.add_accessor([(0.25, 0.75, 0.0, 0.0)] * 3, F32, "VEC4"),
        )
        buffers = b.buffers()

        va = assemble(b.document, prim, buffers, True)
        self.assertEqual(va.layout, VertexLayout(tex1=False, tangent=False, bones=True))
        self.assertEqual(list(va.vertices[0].skin.joints), [0, 1, 0, 0])
        self.assertEqual(list(va.vertices[0].skin.weights), [0.25, 0.75, 0.0, 0.0])

        va = assemble(b.document, prim, buffers, True, weights_format="u16")
        self.assertEqual(list(va.vertices[0].skin.weights), [16384, 49151, 0, 0])

        # joints are ignored for a node without skin
        va = assemble(b.document, prim, buffers, False)
        self.assertFalse(va.layout.bones)

    def test_joint_out_of_skin(self):
        b = GltfBuilder()
        prim = triangle(
            b,
            JOINTS_0=b.add_accessor([(0, 5, 0, 0)] * 3, U16, "VEC4"),
            WEIGHTS_0=b.add_accessor([(0.5, 0.5, 0.0, 0.0)] * 3, F32, "VEC4"),
        )
        with self.assertRaises(InvalidJoint):
            assemble(b.document, prim, b.buffers(), True, joint_count=2)

    def test_bones_without_weights(self):
        b = GltfBuilder()
        prim = triangle(b, JOINTS_0=b.add_accessor([(0, 0, 0, 0)] * 3, U8, "VEC4"))
        with self.assertRaises(MissingAttributes):
            assemble(b.document, prim, b.buffers(), True)

    def test_missing_normal(self):
        b = GltfBuilder()
        prim = triangle(b)
        del prim["attributes"]["NORMAL"]
        with self.assertRaises(MissingAttributes):
            assemble(b.document, prim, b.buffers(), False)

    def test_cardinality_mismatch(self):
        b = GltfBuilder()
        prim = triangle(b, count=10)
        prim["attributes"]["NORMAL"] = b.add_accessor([(0.0, 1.0, 0.0)] * 9)
        with self.assertRaises(CardinalityMismatch):
            assemble(b.document, prim, b.buffers(), False)

    def test_change_of_basis(self):
        b = GltfBuilder()
        prim = triangle(b, TANGENT=b.add_accessor([(0.0, 0.0, 1.0, 1.0)] * 3, F32, "VEC4"))
        va = assemble(b.document, prim, b.buffers(), False, matrix=ROTATE_Y_180)
        v = va.vertices[1]
        for actual, expected in (
            ((v.position.x, v.position.y, v.position.z), (-1.0, 2.0, -3.0)),
            ((v.normal.x, v.normal.y, v.normal.z), (-1.0, 0.0, 0.0)),
            ((v.tangent.x, v.tangent.y, v.tangent.z, v.tangent.w), (0.0, 0.0, -1.0, 1.0)),
        ):
            for a, e in zip(actual, expected):
                self.assertAlmostEqual(a, e, places=6)


class QuantizeTest(unittest.TestCase):
    def test_bounds(self):
        self.assertEqual(quantize_weight(0.0), 0)
        self.assertEqual(quantize_weight(1.0), 65535)
        self.assertEqual(quantize_weight(1.5), 65535)


if __name__ == "__main__":
    unittest.main()
