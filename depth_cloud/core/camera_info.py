import numpy as np
import open3d as o3d
from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class CameraInfo:
    """Pinhole intrinsics of the camera that produced a depth map"""
    width: int
    height: int
    fx: float
    fy: float
    cx: float
    cy: float

    @classmethod
    def from_matrix(cls, camera_matrix, width: int, height: int) -> 'CameraInfo':
        K = np.asarray(camera_matrix, dtype=np.float64)
        if K.shape != (3, 3):
            raise ValueError(f"Camera matrix must be 3x3, got {K.shape}")
        return cls(int(width), int(height), K[0, 0], K[1, 1], K[0, 2], K[1, 2])

    @classmethod
    def from_dict(cls, data: Mapping) -> 'CameraInfo':
        if "camera_matrix" in data:
            return cls.from_matrix(data["camera_matrix"], data["width"], data["height"])
        return cls(int(data["width"]), int(data["height"]),
                   float(data["fx"]), float(data["fy"]),
                   float(data["cx"]), float(data["cy"]))

    def camera_matrix(self) -> np.ndarray:
        return np.array([[self.fx, 0.0, self.cx],
                         [0.0, self.fy, self.cy],
                         [0.0, 0.0, 1.0]])

    def to_open3d(self) -> o3d.camera.PinholeCameraIntrinsic:
        return o3d.camera.PinholeCameraIntrinsic(
            self.width, self.height, self.fx, self.fy, self.cx, self.cy)
