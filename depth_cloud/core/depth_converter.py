"""
Depth to point cloud conversion.

Two algorithms cover every input combination:

* ``depth_to_cloud`` back-projects a 16-bit depth map (millimeters) through a
  pinhole camera model into an organized cloud.
* ``xyz_map_to_cloud`` passes through a per-pixel XYZ map (meters) into an
  unorganized cloud containing only valid points.

Both accept an optional BGR color image and an optional mask aligned with
the depth grid.
"""
import logging
from functools import partial
from typing import Optional

import numpy as np

from ..config import Config, load_config
from ..exceptions import DimensionMismatchError
from .camera_info import CameraInfo
from .component import Component, DataStreamIn, DataStreamOut, Property
from .point_cloud import PointCloud, remove_nan

logger = logging.getLogger(__name__)

MAX_Z = 1.0e4
FLT_EPSILON = float(np.finfo(np.float32).eps)


def _check_aligned(shape, color: Optional[np.ndarray], mask: Optional[np.ndarray]):
    if color is not None and color.shape != (shape[0], shape[1], 3):
        raise DimensionMismatchError(
            f"Color image {color.shape} does not match depth grid {shape[:2]}",
            expected=(shape[0], shape[1], 3), actual=color.shape)
    if mask is not None and mask.shape != shape[:2]:
        raise DimensionMismatchError(
            f"Mask {mask.shape} does not match depth grid {shape[:2]}",
            expected=shape[:2], actual=mask.shape)


def _as_mask(mask: Optional[np.ndarray]) -> Optional[np.ndarray]:
    if mask is None:
        return None
    mask = np.asarray(mask)
    if mask.ndim == 3 and mask.shape[2] == 1:
        mask = mask[:, :, 0]
    return mask.astype(np.float32)


def depth_to_cloud(depth: np.ndarray, camera_info: CameraInfo,
                   color: Optional[np.ndarray] = None,
                   mask: Optional[np.ndarray] = None) -> PointCloud:
    """Back-project a depth map into an organized cloud"""
    depth = np.asarray(depth)
    expected = (camera_info.height, camera_info.width)
    if depth.shape != expected:
        raise DimensionMismatchError(
            f"Depth map {depth.shape} does not match camera info {expected}",
            expected=expected, actual=depth.shape)
    mask = _as_mask(mask)
    color = None if color is None else np.asarray(color)
    _check_aligned(depth.shape, color, mask)

    cloud = PointCloud.organized(camera_info.width, camera_info.height,
                                 with_color=color is not None)

    fx_d = 0.001 / camera_info.fx
    fy_d = 0.001 / camera_info.fy
    u, v = np.meshgrid(np.arange(camera_info.width), np.arange(camera_info.height))

    d = depth.astype(np.float64).reshape(-1)
    valid = d != 0
    if mask is not None:
        valid &= mask.reshape(-1) != 0

    u = u.reshape(-1)[valid]
    v = v.reshape(-1)[valid]
    d = d[valid]
    cloud.points[valid, 0] = (u - camera_info.cx) * d * fx_d
    cloud.points[valid, 1] = (v - camera_info.cy) * d * fy_d
    cloud.points[valid, 2] = d * 0.001

    if color is not None:
        # BGR -> RGB
        cloud.colors[:] = color.reshape(-1, 3)[:, ::-1]

    return cloud


def _valid_pixels(row: np.ndarray, mask_row: Optional[np.ndarray]) -> np.ndarray:
    z = row[:, 2].astype(np.float64)
    keep = ~((np.abs(z - MAX_Z) < FLT_EPSILON) | (np.abs(z) > MAX_Z))
    if mask_row is not None:
        keep &= mask_row != 0
    return keep


def xyz_map_to_cloud(depth_xyz: np.ndarray,
                     color: Optional[np.ndarray] = None,
                     mask: Optional[np.ndarray] = None) -> PointCloud:
    """Collect the valid pixels of an XYZ map into an unorganized cloud.

    A failure while scanning is logged and the points accepted before the
    failing pixel are still returned.
    """
    depth_xyz = np.asarray(depth_xyz)
    if depth_xyz.ndim != 3 or depth_xyz.shape[2] != 3:
        raise DimensionMismatchError(
            f"XYZ map must be HxWx3, got {depth_xyz.shape}", actual=depth_xyz.shape)
    mask = _as_mask(mask)
    color = None if color is None else np.asarray(color)
    _check_aligned(depth_xyz.shape, color, mask)

    points, colors = [], []
    logger.info("Generating depth point cloud")
    try:
        for y in range(depth_xyz.shape[0]):
            mask_row = mask[y] if mask is not None else None
            try:
                keep = _valid_pixels(depth_xyz[y], mask_row)
            except Exception:
                # rescan this row pixel by pixel up to the failing one
                for x in range(depth_xyz.shape[1]):
                    pixel_mask = mask_row[x:x + 1] if mask_row is not None else None
                    if _valid_pixels(depth_xyz[y, x:x + 1], pixel_mask)[0]:
                        points.append(depth_xyz[y, x:x + 1])
                        if color is not None:
                            colors.append(color[y, x:x + 1, ::-1])
                raise

            points.append(depth_xyz[y][keep])
            if color is not None:
                colors.append(color[y][keep][:, ::-1])
    except Exception:
        logger.exception("Error occurred in processing input")

    if points:
        xyz = np.concatenate(points)
    else:
        xyz = np.empty((0, 3), dtype=np.float32)
    rgb = None
    if color is not None:
        rgb = np.concatenate(colors) if colors else np.empty((0, 3), dtype=np.uint8)

    logger.info("Converted points: %d", len(xyz))
    return PointCloud(xyz, rgb)


class DepthConverter(Component):
    """Converts depth maps or XYZ maps into point clouds.

    Handlers are generated from (source, mask, color) capability flags:
    ``process_depth[_mask][_color]`` read ``in_depth`` and ``in_camera_info``,
    ``process_depth_xyz[_color][_mask]`` read ``in_depth_xyz``.
    """

    # handler name -> (source, use_mask, use_color)
    VARIANTS = {
        "process_depth": ("depth", False, False),
        "process_depth_mask": ("depth", True, False),
        "process_depth_color": ("depth", False, True),
        "process_depth_mask_color": ("depth", True, True),
        "process_depth_xyz": ("xyz", False, False),
        "process_depth_xyz_mask": ("xyz", True, False),
        "process_depth_xyz_color": ("xyz", False, True),
        "process_depth_xyz_color_mask": ("xyz", True, True),
    }

    def __init__(self, name: str = "DepthConverter", handlers=None,
                 config: Optional[Config] = None):
        self.config = config if config is not None else load_config()
        super().__init__(name, handlers)

    def prepare_interface(self) -> None:
        self.in_depth = self.register_stream("in_depth", DataStreamIn())
        self.in_depth_xyz = self.register_stream("in_depth_xyz", DataStreamIn())
        self.in_color = self.register_stream("in_color", DataStreamIn())
        self.in_mask = self.register_stream("in_mask", DataStreamIn())
        self.in_camera_info = self.register_stream("in_camera_info", DataStreamIn())
        self.out_cloud_xyz = self.register_stream("out_cloud_xyz", DataStreamOut())
        self.out_cloud_xyzrgb = self.register_stream("out_cloud_xyzrgb", DataStreamOut())

        self.remove_nan = self.register_property(
            Property("remove_nan", self.config.depth_converter.remove_nan))

        for handler, (source, use_mask, use_color) in self.VARIANTS.items():
            self.register_handler(handler, partial(self.process, source, use_mask, use_color))
            if source == "depth":
                self.add_dependency(handler, self.in_depth)
                self.add_dependency(handler, self.in_camera_info)
            else:
                self.add_dependency(handler, self.in_depth_xyz)
            if use_mask:
                self.add_dependency(handler, self.in_mask)
            if use_color:
                self.add_dependency(handler, self.in_color)

    def process(self, source: str, use_mask: bool, use_color: bool) -> None:
        mask = self.in_mask.read() if use_mask else None
        color = self.in_color.read() if use_color else None

        if source == "depth":
            camera_info = self.in_camera_info.read()
            depth = self.in_depth.read()
            logger.debug("Width: %d Height: %d", camera_info.width, camera_info.height)
            cloud = depth_to_cloud(depth, camera_info, color=color, mask=mask)
        else:
            cloud = xyz_map_to_cloud(self.in_depth_xyz.read(), color=color, mask=mask)

        if self.remove_nan:
            cloud.is_dense = False
            cloud, _ = remove_nan(cloud)

        if use_color:
            self.out_cloud_xyzrgb.write(cloud)
        else:
            self.out_cloud_xyz.write(cloud)
