"""
Point cloud container shared by all components.

Points are stored as flat row-major arrays. A cloud with ``height > 1`` is
organized: it keeps one entry per pixel of the grid it was built from and
marks missing measurements with NaN coordinates.
"""
import numpy as np
from typing import Optional, Sequence, Tuple


class PointCloud:
    def __init__(self, points: Optional[np.ndarray] = None,
                 colors: Optional[np.ndarray] = None,
                 width: Optional[int] = None, height: int = 1,
                 is_dense: bool = True,
                 descriptors: Optional[np.ndarray] = None):
        if points is None:
            points = np.empty((0, 3), dtype=np.float32)
        self.points = np.asarray(points, dtype=np.float32).reshape(-1, 3)
        n = len(self.points)

        self.colors = None
        if colors is not None:
            self.colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
            if len(self.colors) != n:
                raise ValueError(f"Expected {n} colors, got {len(self.colors)}")

        self.descriptors = None
        if descriptors is not None:
            self.descriptors = np.asarray(descriptors, dtype=np.float32)
            if self.descriptors.ndim != 2 or len(self.descriptors) != n:
                raise ValueError(f"Expected {n} descriptor rows, got shape {self.descriptors.shape}")

        if width is None:
            width = n // height if height else 0
        if width * height != n:
            raise ValueError(f"Cloud of {n} points cannot be {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.is_dense = bool(is_dense)

    @classmethod
    def organized(cls, width: int, height: int, with_color: bool = False) -> 'PointCloud':
        """Create an organized cloud with every point marked invalid"""
        points = np.full((width * height, 3), np.nan, dtype=np.float32)
        colors = np.zeros((width * height, 3), dtype=np.uint8) if with_color else None
        return cls(points, colors, width=width, height=height, is_dense=False)

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        kind = "XYZRGB" if self.has_colors() else "XYZ"
        return f"PointCloud<{kind}>({self.width}x{self.height}, dense={self.is_dense})"

    @property
    def is_organized(self) -> bool:
        return self.height > 1

    def has_colors(self) -> bool:
        return self.colors is not None

    def has_descriptors(self) -> bool:
        return self.descriptors is not None

    def at(self, u: int, v: int) -> np.ndarray:
        """Point at column u, row v of an organized cloud"""
        if not (0 <= u < self.width and 0 <= v < self.height):
            raise IndexError(f"Pixel ({u}, {v}) outside {self.width}x{self.height} cloud")
        return self.points[v * self.width + u]

    def valid_mask(self) -> np.ndarray:
        return np.all(np.isfinite(self.points), axis=1)

    def packed_rgb(self) -> np.ndarray:
        """Pack colors as (r << 16 | g << 8 | b)"""
        if self.colors is None:
            raise ValueError("Point cloud has no color information")
        rgb = self.colors.astype(np.uint32)
        return (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]

    def rgb_as_float(self) -> np.ndarray:
        """Packed colors reinterpreted as float32, the classic PCL rgb field"""
        return self.packed_rgb().view(np.float32)

    @staticmethod
    def unpack_rgb(packed: Sequence[int]) -> np.ndarray:
        packed = np.asarray(packed, dtype=np.uint32)
        return np.stack([(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF],
                        axis=1).astype(np.uint8)

    def select(self, indices: Sequence[int]) -> 'PointCloud':
        """Unorganized cloud made of the given entries"""
        indices = np.asarray(indices, dtype=np.int64)
        return PointCloud(
            self.points[indices],
            None if self.colors is None else self.colors[indices],
            is_dense=self.is_dense,
            descriptors=None if self.descriptors is None else self.descriptors[indices],
        )

    def copy(self) -> 'PointCloud':
        return PointCloud(
            self.points.copy(),
            None if self.colors is None else self.colors.copy(),
            width=self.width, height=self.height, is_dense=self.is_dense,
            descriptors=None if self.descriptors is None else self.descriptors.copy(),
        )


def remove_nan(cloud: PointCloud) -> Tuple[PointCloud, np.ndarray]:
    """Drop points with NaN coordinates.

    A cloud flagged dense is returned as is. Otherwise the result is an
    unorganized, dense cloud together with the indices of the kept points.
    """
    if cloud.is_dense:
        return cloud, np.arange(len(cloud))

    indices = np.flatnonzero(~np.any(np.isnan(cloud.points), axis=1))
    filtered = cloud.select(indices)
    filtered.is_dense = True
    return filtered, indices
