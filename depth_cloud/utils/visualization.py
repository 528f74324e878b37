import open3d as o3d
from typing import List

from ..core.point_cloud import PointCloud
from ..core.point_cloud_processor import PointCloudProcessor


class Visualizer:
    @staticmethod
    def draw_point_clouds(point_clouds: List[PointCloud],
                         window_name: str = "Point Cloud"):
        """Visualize multiple point clouds"""
        geometries = [PointCloudProcessor.to_open3d(cloud) for cloud in point_clouds]
        o3d.visualization.draw_geometries(geometries, window_name=window_name)
