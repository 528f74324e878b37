import numpy as np

from ..exceptions import ComponentError


class Transformations:
    @staticmethod
    def homogeneous_matrix(rotation: np.ndarray = None, translation=None) -> np.ndarray:
        """Build a 4x4 rigid transform from rotation and translation"""
        matrix = np.eye(4)
        if rotation is not None:
            matrix[:3, :3] = rotation
        if translation is not None:
            matrix[:3, 3] = translation
        return matrix

    @staticmethod
    def as_homogeneous(matrix) -> np.ndarray:
        """Validate and return a 4x4 float64 transform"""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ComponentError(f"Expected a 4x4 homogeneous matrix, got {matrix.shape}")
        return matrix

    @staticmethod
    def apply_transform(points: np.ndarray, transform: np.ndarray) -> np.ndarray:
        """Apply 4x4 rigid transform to Nx3 points"""
        points = np.asarray(points, dtype=np.float64)
        return points @ transform[:3, :3].T + transform[:3, 3]
