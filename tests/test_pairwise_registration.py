import unittest
import numpy as np
from depth_cloud.config import Config
from depth_cloud.core.component import StreamRecorder, connect
from depth_cloud.core.pairwise_registration import PairwiseRegistration, register_clouds
from depth_cloud.core.point_cloud import PointCloud
from depth_cloud.exceptions import ComponentError
from depth_cloud.utils.transformations import Transformations

class TestPairwiseRegistration(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(7)
        self.target_points = rng.uniform(0.0, 1.0, (1000, 3))
        self.offset = np.array([0.02, -0.01, 0.015])
        # source is the target shifted back, so the aligning transform is +offset
        self.target = PointCloud(self.target_points)
        self.source = PointCloud(self.target_points - self.offset)

    def test_register_clouds_recovers_translation(self):
        result = register_clouds(self.source, self.target, np.eye(4),
                                 stddev_mul_thresh=1.0, mean_k=20,
                                 max_correspondence_distance=0.05, max_iterations=50)
        np.testing.assert_allclose(result.transformation[:3, 3], self.offset, atol=1e-3)
        np.testing.assert_allclose(result.transformation[:3, :3], np.eye(3), atol=1e-3)
        self.assertGreater(result.fitness, 0.9)
        self.assertAlmostEqual(result.correction_translation, np.linalg.norm(self.offset), places=3)

    def test_exact_initial_guess_needs_no_correction(self):
        initial = Transformations.homogeneous_matrix(translation=self.offset)
        result = register_clouds(self.source, self.target, initial, mean_k=20)
        self.assertLess(result.correction_translation, 1e-4)
        self.assertLess(result.correction_angle_deg, 1e-2)

    def test_component_publishes_initial_then_refined(self):
        component = PairwiseRegistration(config=Config())
        component.set_property("MeanK", 20)
        recorder = StreamRecorder()
        connect(component.out_transformation_xyz, recorder)
        component.initialize()

        component.in_cloud_xyz.write(self.target)
        component.in_transformation.write(np.eye(4))
        component.dispatch()
        np.testing.assert_array_equal(recorder.last, np.eye(4))

        component.in_cloud_xyz.write(self.source)
        component.in_transformation.write(np.eye(4))
        component.dispatch()
        np.testing.assert_allclose(recorder.last[:3, 3], self.offset, atol=1e-3)
        self.assertIs(component.previous_xyz, self.source)
        self.assertEqual(component.out_transformation_xyzrgb.write_count, 0)

    def test_stale_cloud_not_registered_twice(self):
        component = PairwiseRegistration(config=Config())
        component.in_cloud_xyz.write(self.target)
        component.in_transformation.write(np.eye(4))
        component.dispatch()
        component.in_transformation.write(np.eye(4))
        component.dispatch()
        self.assertEqual(component.out_transformation_xyz.write_count, 1)

    def test_xyzrgb_clouds_use_their_own_history(self):
        component = PairwiseRegistration(config=Config())
        colored = PointCloud(self.target_points, colors=np.zeros((1000, 3), dtype=np.uint8))
        component.in_cloud_xyzrgb.write(colored)
        component.in_transformation.write(np.eye(4))
        component.dispatch()
        self.assertIsNone(component.previous_xyz)
        self.assertIs(component.previous_xyzrgb, colored)
        self.assertEqual(component.out_transformation_xyzrgb.write_count, 1)

    def test_malformed_transformation(self):
        component = PairwiseRegistration(config=Config())
        component.in_transformation.write(np.eye(3))
        with self.assertRaises(ComponentError):
            component.dispatch()

    def test_apply_transform(self):
        rotation = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        transform = Transformations.homogeneous_matrix(rotation, [1.0, 0.0, 0.0])
        moved = Transformations.apply_transform(np.array([[1.0, 0.0, 0.0]]), transform)
        np.testing.assert_allclose(moved, [[1.0, 1.0, 0.0]], atol=1e-12)

if __name__ == "__main__":
    unittest.main()
