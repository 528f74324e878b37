import os
import tempfile
import unittest
import numpy as np
import open3d as o3d
from depth_cloud.config import Config
from depth_cloud.core.point_cloud import PointCloud, remove_nan
from depth_cloud.core.point_cloud_processor import PointCloudProcessor

class TestPointCloud(unittest.TestCase):
    def setUp(self):
        self.processor = PointCloudProcessor(config=Config())

        # Organized 3x2 cloud with two invalid entries
        self.organized = PointCloud.organized(3, 2, with_color=True)
        self.organized.points[0] = [0.1, 0.2, 1.0]
        self.organized.points[2] = [0.3, 0.4, 2.0]
        self.organized.points[3] = [0.5, 0.6, 3.0]
        self.organized.points[5] = [0.7, 0.8, 4.0]
        self.organized.colors[:] = [[30, 20, 10]] * 6

    def test_organized_cloud_is_nan_filled(self):
        cloud = PointCloud.organized(4, 3)
        self.assertEqual(len(cloud), 12)
        self.assertTrue(cloud.is_organized)
        self.assertFalse(cloud.valid_mask().any())
        self.assertFalse(cloud.has_colors())

    def test_at_uses_row_major_order(self):
        np.testing.assert_allclose(self.organized.at(0, 1), [0.5, 0.6, 3.0], rtol=1e-6)
        with self.assertRaises(IndexError):
            self.organized.at(3, 0)

    def test_size_mismatch_rejected(self):
        with self.assertRaises(ValueError):
            PointCloud(np.zeros((5, 3)), width=2, height=2)
        with self.assertRaises(ValueError):
            PointCloud(np.zeros((2, 3)), colors=np.zeros((3, 3)))

    def test_remove_nan_compacts_cloud(self):
        filtered, indices = remove_nan(self.organized)
        self.assertEqual(len(filtered), 4)
        self.assertEqual(filtered.height, 1)
        self.assertEqual(filtered.width, 4)
        self.assertTrue(filtered.is_dense)
        np.testing.assert_array_equal(indices, [0, 2, 3, 5])
        np.testing.assert_array_equal(filtered.colors[0], [30, 20, 10])

    def test_remove_nan_keeps_dense_cloud(self):
        cloud = PointCloud(np.array([[np.nan, 0, 0], [1, 1, 1]]))
        same, indices = remove_nan(cloud)
        self.assertIs(same, cloud)
        self.assertEqual(len(indices), 2)

    def test_remove_nan_is_idempotent(self):
        once, _ = remove_nan(self.organized)
        twice_input = once.copy()
        twice_input.is_dense = False
        twice, _ = remove_nan(twice_input)
        np.testing.assert_array_equal(once.points, twice.points)
        np.testing.assert_array_equal(once.colors, twice.colors)
        self.assertEqual((once.width, once.height), (twice.width, twice.height))

    def test_packed_rgb(self):
        cloud = PointCloud(np.zeros((1, 3)), colors=[[30, 20, 10]])
        packed = cloud.packed_rgb()
        self.assertEqual(int(packed[0]), (30 << 16) | (20 << 8) | 10)
        np.testing.assert_array_equal(PointCloud.unpack_rgb(packed), [[30, 20, 10]])
        self.assertEqual(cloud.rgb_as_float().dtype, np.float32)
        self.assertEqual(int(cloud.rgb_as_float().view(np.uint32)[0]), int(packed[0]))

    def test_packed_rgb_requires_colors(self):
        with self.assertRaises(ValueError):
            PointCloud(np.zeros((1, 3))).packed_rgb()

    def test_to_open3d_drops_invalid_points(self):
        pcd = self.processor.to_open3d(self.organized)
        self.assertEqual(len(pcd.points), 4)
        self.assertTrue(pcd.has_colors())
        np.testing.assert_allclose(np.asarray(pcd.colors)[0], [30 / 255, 20 / 255, 10 / 255])

    def test_from_open3d(self):
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 1.0]]))
        pcd.colors = o3d.utility.Vector3dVector(np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]]))
        cloud = self.processor.from_open3d(pcd)
        self.assertEqual(len(cloud), 2)
        np.testing.assert_array_equal(cloud.colors, [[255, 0, 0], [0, 0, 255]])

    def test_downsample_point_cloud(self):
        points = np.array([
            [0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1],
            [1, 1, 0], [1, 0, 1], [0, 1, 1], [1, 1, 1]
        ], dtype=float)
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(points)
        downsampled = self.processor.downsample_point_cloud(pcd, 0.5)
        self.assertLessEqual(len(downsampled.points), len(pcd.points))

    def test_statistical_outliers(self):
        rng = np.random.default_rng(0)
        points = np.vstack([rng.uniform(0, 0.1, (200, 3)), [[5.0, 5.0, 5.0]]])
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(points)

        kept, indices = self.processor.remove_statistical_outliers(pcd, 20, 1.0)
        self.assertNotIn(200, indices)
        self.assertEqual(len(kept.points), len(indices))

        outliers, outlier_indices = self.processor.remove_statistical_outliers(pcd, 20, 1.0, negative=True)
        self.assertIn(200, outlier_indices)
        self.assertEqual(len(indices) + len(outlier_indices), 201)

    def test_save_and_load_point_cloud(self):
        cloud = PointCloud(np.array([[0.0, 0.0, 1.0], [0.5, 0.5, 2.0]]), colors=[[255, 0, 0], [0, 255, 0]])
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nested", "cloud.ply")
            self.assertTrue(self.processor.save_point_cloud(cloud, path))
            loaded = self.processor.load_point_cloud(path)
        np.testing.assert_allclose(loaded.points, cloud.points, atol=1e-6)
        np.testing.assert_array_equal(loaded.colors, cloud.colors)

    def test_load_missing_point_cloud(self):
        with self.assertRaises(FileNotFoundError):
            self.processor.load_point_cloud("does/not/exist.pcd")

if __name__ == "__main__":
    unittest.main()
