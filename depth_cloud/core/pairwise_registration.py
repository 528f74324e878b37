import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import open3d as o3d
from scipy.spatial.transform import Rotation as R

from ..config import Config, load_config
from ..utils.transformations import Transformations
from .component import Component, DataStreamIn, DataStreamOut, Property
from .point_cloud import PointCloud
from .point_cloud_processor import PointCloudProcessor

logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    transformation: np.ndarray
    fitness: float
    inlier_rmse: float
    correction_angle_deg: float
    correction_translation: float


def register_clouds(source: PointCloud, target: PointCloud,
                    initial: Optional[np.ndarray] = None,
                    stddev_mul_thresh: float = 1.0, mean_k: int = 50,
                    negative: bool = False,
                    max_correspondence_distance: float = 0.05,
                    max_iterations: int = 30) -> RegistrationResult:
    """Rigid transform aligning source onto target, refined from an initial guess"""
    initial = np.eye(4) if initial is None else Transformations.as_homogeneous(initial)

    source_pcd, _ = PointCloudProcessor.remove_statistical_outliers(
        PointCloudProcessor.to_open3d(source), mean_k, stddev_mul_thresh, negative)
    target_pcd, _ = PointCloudProcessor.remove_statistical_outliers(
        PointCloudProcessor.to_open3d(target), mean_k, stddev_mul_thresh, negative)

    result = o3d.pipelines.registration.registration_icp(
        source_pcd, target_pcd, max_correspondence_distance, initial,
        o3d.pipelines.registration.TransformationEstimationPointToPoint(),
        o3d.pipelines.registration.ICPConvergenceCriteria(max_iteration=max_iterations))

    transformation = np.asarray(result.transformation)
    # refinement relative to the initial guess
    correction = transformation @ np.linalg.inv(initial)
    angle = np.degrees(R.from_matrix(correction[:3, :3]).magnitude())

    return RegistrationResult(
        transformation=transformation,
        fitness=float(result.fitness),
        inlier_rmse=float(result.inlier_rmse),
        correction_angle_deg=float(angle),
        correction_translation=float(np.linalg.norm(correction[:3, 3])),
    )


class PairwiseRegistration(Component):
    """Aligns each incoming cloud onto the previous cloud of the same type"""

    def __init__(self, name: str = "PairwiseRegistration", handlers=None,
                 config: Optional[Config] = None):
        self.config = config if config is not None else load_config()
        self.previous_xyz: Optional[PointCloud] = None
        self.previous_xyzrgb: Optional[PointCloud] = None
        super().__init__(name, handlers)

    def prepare_interface(self) -> None:
        cfg = self.config.registration
        self.in_cloud_xyz = self.register_stream("in_cloud_xyz", DataStreamIn())
        self.in_cloud_xyzrgb = self.register_stream("in_cloud_xyzrgb", DataStreamIn())
        self.in_transformation = self.register_stream("in_transformation", DataStreamIn())
        self.out_transformation_xyz = self.register_stream("out_transformation_xyz", DataStreamOut())
        self.out_transformation_xyzrgb = self.register_stream("out_transformation_xyzrgb", DataStreamOut())

        self.negative = self.register_property(Property("negative", cfg.negative))
        self.stddev_mul_thresh = self.register_property(Property("StddevMulThresh", float(cfg.stddev_mul_thresh)))
        self.mean_k = self.register_property(Property("MeanK", int(cfg.mean_k)))
        self.max_correspondence_distance = self.register_property(
            Property("max_correspondence_distance", float(cfg.max_correspondence_distance)))
        self.max_iterations = self.register_property(Property("max_iterations", int(cfg.max_iterations)))

        self.register_handler("pairwise_registration", self.pairwise_registration)
        self.add_dependency("pairwise_registration", self.in_transformation)

    def on_init(self) -> bool:
        self.previous_xyz = None
        self.previous_xyzrgb = None
        return True

    def pairwise_registration(self) -> None:
        initial = Transformations.as_homogeneous(self.in_transformation.read())

        if self.in_cloud_xyz.fresh:
            self.in_cloud_xyz.consume()
            self.registration_xyz(initial)
        if self.in_cloud_xyzrgb.fresh:
            self.in_cloud_xyzrgb.consume()
            self.registration_xyzrgb(initial)

    def registration_xyz(self, initial: np.ndarray) -> None:
        cloud = self.in_cloud_xyz.read()
        self.out_transformation_xyz.write(self._align(cloud, self.previous_xyz, initial))
        self.previous_xyz = cloud

    def registration_xyzrgb(self, initial: np.ndarray) -> None:
        cloud = self.in_cloud_xyzrgb.read()
        self.out_transformation_xyzrgb.write(self._align(cloud, self.previous_xyzrgb, initial))
        self.previous_xyzrgb = cloud

    def _align(self, cloud: PointCloud, previous: Optional[PointCloud],
               initial: np.ndarray) -> np.ndarray:
        if previous is None:
            logger.info("%s: first cloud, publishing initial transformation", self.name)
            return initial.copy()

        result = register_clouds(
            cloud, previous, initial,
            stddev_mul_thresh=self.stddev_mul_thresh.value,
            mean_k=self.mean_k.value,
            negative=bool(self.negative),
            max_correspondence_distance=self.max_correspondence_distance.value,
            max_iterations=self.max_iterations.value,
        )
        logger.info("%s: fitness %.3f, rmse %.4f, correction %.2f deg / %.4f m",
                    self.name, result.fitness, result.inlier_rmse,
                    result.correction_angle_deg, result.correction_translation)
        return result.transformation
