"""
Core conversion components
"""
from .point_cloud import PointCloud, remove_nan
from .point_cloud_processor import PointCloudProcessor
from .camera_info import CameraInfo
from .component import Component, DataStreamIn, DataStreamOut, StreamRecorder, connect
from .depth_converter import DepthConverter, depth_to_cloud, xyz_map_to_cloud
from .json_writer import JSONWriter
from .pairwise_registration import PairwiseRegistration, register_clouds

__all__ = ['PointCloud', 'remove_nan', 'PointCloudProcessor', 'CameraInfo', 'Component',
           'DataStreamIn', 'DataStreamOut', 'StreamRecorder', 'connect', 'DepthConverter',
           'depth_to_cloud', 'xyz_map_to_cloud', 'JSONWriter', 'PairwiseRegistration',
           'register_clouds']
