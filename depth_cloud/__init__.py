"""
Depth image to point cloud components for perception pipelines
"""
__version__ = "0.1.0"

from .core import (CameraInfo, DepthConverter, JSONWriter, PairwiseRegistration,
                   PointCloud, PointCloudProcessor)
from .exceptions import ComponentError, DepthCloudError, DimensionMismatchError, StreamEmptyError

__all__ = ['CameraInfo', 'DepthConverter', 'JSONWriter', 'PairwiseRegistration',
           'PointCloud', 'PointCloudProcessor', 'ComponentError', 'DepthCloudError',
           'DimensionMismatchError', 'StreamEmptyError']
