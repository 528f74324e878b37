import logging
import os
from typing import Optional, Tuple

import numpy as np
import open3d as o3d

from ..config import DEFAULT_CONFIG_PATH, Config, load_config
from .point_cloud import PointCloud

logger = logging.getLogger(__name__)


class PointCloudProcessor:
    def __init__(self, config: Optional[Config] = None, config_path: Optional[str] = None):
        self.config = config if config is not None else load_config(config_path or DEFAULT_CONFIG_PATH)

    @staticmethod
    def to_open3d(cloud: PointCloud) -> o3d.geometry.PointCloud:
        """Convert to Open3D point cloud, dropping invalid points"""
        valid = cloud.valid_mask()
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(cloud.points[valid].astype(np.float64))

        if cloud.has_colors():
            pcd.colors = o3d.utility.Vector3dVector(cloud.colors[valid].astype(np.float64) / 255.0)

        return pcd

    @staticmethod
    def from_open3d(pcd: o3d.geometry.PointCloud) -> PointCloud:
        """Convert Open3D point cloud to an unorganized PointCloud"""
        points = np.asarray(pcd.points)
        colors = None
        if pcd.has_colors():
            colors = np.round(np.asarray(pcd.colors) * 255.0).clip(0, 255).astype(np.uint8)
        return PointCloud(points, colors)

    def load_point_cloud(self, file_path: str) -> PointCloud:
        """Load point cloud from file"""
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Point cloud file not found: {file_path}")

        pcd = o3d.io.read_point_cloud(file_path)
        if not pcd.has_points():
            raise ValueError("Failed to load point cloud or file is empty")

        return self.from_open3d(pcd)

    def save_point_cloud(self, cloud: PointCloud, file_path: str) -> bool:
        """Save point cloud to file"""
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        written = o3d.io.write_point_cloud(file_path, self.to_open3d(cloud))
        if written:
            logger.info("Saved %d data points to %s", len(cloud), file_path)
        else:
            logger.error("Failed to write point cloud to %s", file_path)
        return written

    def downsample_point_cloud(self, pcd: o3d.geometry.PointCloud,
                               voxel_size: Optional[float] = None) -> o3d.geometry.PointCloud:
        """Downsample point cloud using voxel grid"""
        if voxel_size is None:
            voxel_size = self.config.point_cloud.voxel_size

        return pcd.voxel_down_sample(voxel_size=voxel_size)

    @staticmethod
    def remove_statistical_outliers(pcd: o3d.geometry.PointCloud, mean_k: int,
                                    stddev_mul_thresh: float,
                                    negative: bool = False) -> Tuple[o3d.geometry.PointCloud, list]:
        """Statistical outlier filter; with negative=True the outliers are kept instead"""
        if len(pcd.points) <= mean_k:
            return pcd, list(range(len(pcd.points)))

        _, inliers = pcd.remove_statistical_outlier(nb_neighbors=mean_k, std_ratio=stddev_mul_thresh)
        if negative:
            inlier_set = set(inliers)
            kept = [i for i in range(len(pcd.points)) if i not in inlier_set]
        else:
            kept = list(inliers)

        return pcd.select_by_index(kept), kept
