import math
import unittest

from wg3d import skin
from wg3d.errors import (
    CardinalityMismatch,
    InvalidJoint,
    NonUniformScaling,
    NoSkeleton,
    TooManyJoints,
    UnreachableJoint,
)
from wg3d.settings import ROTATE_Y_180, Settings
from wg3d.transform import BasisChange

from .helpers import F32, GltfBuilder, chain_nodes


class SkeletonTest(unittest.TestCase):
    def test_chain(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(4)
        b.add("skins", {"joints": [0, 1, 2, 3], "skeleton": 0})
        skeleton = skin.build(b.document, 0, b.buffers())

        self.assertEqual(len(skeleton), 4)
        for node in range(4):
            self.assertEqual(skeleton.get_joint_index(node), node)
            self.assertEqual(skeleton.get_node_index(node), node)
        self.assertEqual([j.parent for j in skeleton.joints], [None, 0, 1, 2])
        self.assertEqual(skeleton.joints[2].name, "node2")
        self.assertEqual(skeleton.joints[0].inverse_bind_matrix, skin.IDENTITY)

    def test_joint_index_differs_from_node_index(self):
        b = GltfBuilder()
        b.document["nodes"] = [
            {"name": "armature", "children": [3]},
            {"name": "spine", "children": [2]},
            {"name": "head"},
            {"name": "hips", "children": [1], "translation": [0.0, 1.0, 0.0]},
        ]
        b.add("skins", {"joints": [3, 1, 2], "skeleton": 0})
        skeleton = skin.build(b.document, 0, b.buffers())

        self.assertEqual([j.parent for j in skeleton.joints], [None, 0, 1])
        self.assertEqual(skeleton.get_joint_index(1), 1)
        self.assertEqual(skeleton.get_joint_index(3), 0)
        self.assertIsNone(skeleton.get_joint_index(0))
        self.assertEqual(skeleton.get_node_index(0), 3)
        self.assertEqual(skeleton.joints[0].translation, (0.0, 1.0, 0.0))
        self.assertEqual(skeleton.joints[0].rotation, (0.0, 0.0, 0.0, 1.0))
        self.assertEqual(skeleton.joints[0].scale, 1.0)

    def test_no_skeleton(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(2)
        b.add("skins", {"joints": [0, 1]})
        b.add("skins", {"joints": [0, 1], "skeleton": 5})
        buffers = b.buffers()
        with self.assertRaises(NoSkeleton):
            skin.build(b.document, 0, buffers)
        with self.assertRaises(NoSkeleton):
            skin.build(b.document, 1, buffers)

    def test_joint_outside_of_root(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(3) + [{"name": "other"}]
        b.add("skins", {"joints": [1, 2, 3], "skeleton": 1})
        with self.assertRaises(UnreachableJoint):
            skin.build(b.document, 0, b.buffers())

    def test_joint_count_limit(self):
        count = skin.MAX_JOINTS
        b = GltfBuilder()
        b.document["nodes"] = [{"children": list(range(1, count + 1))}] + [
            {} for _ in range(count)
        ]
        b.add("skins", {"joints": list(range(count)), "skeleton": 0})
        b.add("skins", {"joints": list(range(count + 1)), "skeleton": 0})
        buffers = b.buffers()

        skeleton = skin.build(b.document, 0, buffers)
        self.assertEqual(len(skeleton), 65535)
        self.assertEqual(skeleton.joints[65534].parent, 0)
        with self.assertRaises(TooManyJoints):
            skin.build(b.document, 1, buffers)

    def test_inverse_bind_matrices(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(2)
        translated = (1.0, 0, 0, 0, 0, 1.0, 0, 0, 0, 0, 1.0, 0, 0, -2.0, 0, 1.0)
        identity = tuple(float(v) for row in skin.IDENTITY for v in row)
        ibm = b.add_accessor([identity, translated], F32, "MAT4")
        b.add("skins", {"joints": [0, 1], "skeleton": 0, "inverseBindMatrices": ibm})
        skeleton = skin.build(b.document, 0, b.buffers())
        self.assertEqual(skeleton.joints[0].inverse_bind_matrix, skin.IDENTITY)
        self.assertEqual(skeleton.joints[1].inverse_bind_matrix[3], (0.0, -2.0, 0.0, 1.0))

    def test_inverse_bind_matrix_count(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(2)
        identity = tuple(float(v) for row in skin.IDENTITY for v in row)
        ibm = b.add_accessor([identity], F32, "MAT4")
        b.add("skins", {"joints": [0, 1], "skeleton": 0, "inverseBindMatrices": ibm})
        with self.assertRaises(CardinalityMismatch):
            skin.build(b.document, 0, b.buffers())

    def test_joint_matrix_is_decomposed(self):
        b = GltfBuilder()
        b.document["nodes"] = [
            {
                "children": [1],
                "matrix": [2, 0, 0, 0, 0, 2, 0, 0, 0, 0, 2, 0, 1, 2, 3, 1],
            },
            {"scale": [1.0, 2.0, 1.0]},
        ]
        b.add("skins", {"joints": [0], "skeleton": 0})
        b.add("skins", {"joints": [0, 1], "skeleton": 0})
        buffers = b.buffers()

        (joint,) = skin.build(b.document, 0, buffers).joints
        for actual, expected in zip(joint.translation, (1.0, 2.0, 3.0)):
            self.assertAlmostEqual(actual, expected, places=5)
        self.assertAlmostEqual(joint.scale, 2.0, places=5)
        with self.assertRaises(NonUniformScaling):
            skin.build(b.document, 1, buffers)

    def test_node_index_of_unknown_joint(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(2)
        b.add("skins", {"joints": [0, 1], "skeleton": 0})
        skeleton = skin.build(b.document, 0, b.buffers())
        for joint_index in (-1, 2):
            with self.assertRaises(InvalidJoint):
                skeleton.get_node_index(joint_index)

    def test_scale_out_of_f32_range(self):
        b = GltfBuilder()
        b.document["nodes"] = [{"scale": [1e39, 1.0, 1.0]}]
        b.add("skins", {"joints": [0], "skeleton": 0})
        with self.assertRaises(NonUniformScaling):
            skin.build(b.document, 0, b.buffers())

    def test_rest_pose_follows_change_of_basis(self):
        s = math.sqrt(0.5)
        b = GltfBuilder()
        b.document["nodes"] = [
            {"children": [1]},
            {"translation": [1.0, 0.0, 2.0], "rotation": [s, 0.0, 0.0, s]},
        ]
        translated = (1.0, 0, 0, 0, 0, 1.0, 0, 0, 0, 0, 1.0, 0, 0, -2.0, 0, 1.0)
        ibm = b.add_accessor([translated], F32, "MAT4")
        b.add("skins", {"joints": [1], "skeleton": 0, "inverseBindMatrices": ibm})
        change = BasisChange(Settings(basis=ROTATE_Y_180, global_scale=2.0).matrix())
        (joint,) = skin.build(b.document, 0, b.buffers(), change).joints

        for actual, expected in zip(joint.translation, (-2.0, 0.0, -4.0)):
            self.assertAlmostEqual(actual, expected, places=5)
        # 90 degrees around +X becomes 90 degrees around -X
        for actual, expected in zip(joint.rotation, (-s, 0.0, 0.0, s)):
            self.assertAlmostEqual(actual, expected, places=5)
        self.assertEqual(joint.scale, 1.0)
        columns = joint.inverse_bind_matrix
        for actual, expected in zip(columns[3], (0.0, -4.0, 0.0, 1.0)):
            self.assertAlmostEqual(actual, expected, places=5)
        for i in range(3):
            for j in range(4):
                self.assertAlmostEqual(columns[i][j], 1.0 if i == j else 0.0, places=5)

    def test_find_joint_across_skins(self):
        b = GltfBuilder()
        b.document["nodes"] = chain_nodes(4)
        b.add("skins", {"joints": [0, 1], "skeleton": 0})
        b.add("skins", {"joints": [2, 3], "skeleton": 2})
        skeletons = skin.get(b.document, b.buffers())
        self.assertEqual(skin.find_joint(skeletons, 3), (1, 1))
        self.assertEqual(skeletons[1].joints[0].parent, None)
        self.assertIsNone(skin.find_joint(skeletons, 9))


if __name__ == "__main__":
    unittest.main()
