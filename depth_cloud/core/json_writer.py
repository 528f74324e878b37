import logging
from typing import List, Optional

import numpy as np

from ..config import Config, load_config
from ..utils.file_io import FileIO
from .component import Component, DataStreamIn, Property
from .point_cloud import PointCloud

logger = logging.getLogger(__name__)

DESCRIPTOR_LENGTH = 128


def cloud_to_entries(cloud: PointCloud) -> List[dict]:
    """One JSON entry per point with a valid x coordinate"""
    rgb = cloud.packed_rgb() if cloud.has_colors() else None
    entries = []
    for i, (x, y, z) in enumerate(cloud.points):
        if np.isnan(x):
            continue
        entry = {"x": float(x), "y": float(y), "z": float(z)}
        if rgb is not None:
            entry["RGB"] = float(rgb[i])
        if cloud.has_descriptors():
            descriptor = cloud.descriptors[i][:DESCRIPTOR_LENGTH]
            if descriptor.size:
                # NaN / inf are not valid JSON numbers
                entry["SIFT"] = [float(value) if np.isfinite(value) else None
                                 for value in descriptor]
        entries.append(entry)
    return entries


class JSONWriter(Component):
    """Writes clouds with color and SIFT descriptors into a JSON document"""

    def __init__(self, name: str = "JSONWriter", handlers=None,
                 config: Optional[Config] = None, path: Optional[str] = None):
        self.config = config if config is not None else load_config()
        self._path = path if path is not None else self.config.json_writer.path
        self.write_count = 0
        super().__init__(name, handlers)

    def prepare_interface(self) -> None:
        self.in_cloud_xyzrgbsift = self.register_stream("in_cloud_xyzrgbsift", DataStreamIn())
        self.in_cloud_xyz = self.register_stream("in_cloud_xyz", DataStreamIn())
        self.in_cloud_xyzrgb = self.register_stream("in_cloud_xyzrgb", DataStreamIn())

        self.path = self.register_property(Property("path", self._path))

        self.register_handler("write_xyz", self.write_xyz)
        self.add_dependency("write_xyz", self.in_cloud_xyz)
        self.register_handler("write_xyzrgb", self.write_xyzrgb)
        self.add_dependency("write_xyzrgb", self.in_cloud_xyzrgb)
        self.register_handler("write_xyzrgbsift", self.write_xyzrgbsift)
        self.add_dependency("write_xyzrgbsift", self.in_cloud_xyzrgbsift)

    def on_init(self) -> bool:
        self.write_count = 0
        return True

    def write_xyz(self) -> None:
        pass

    def write_xyzrgb(self) -> None:
        pass

    def write_xyzrgbsift(self) -> None:
        cloud = self.in_cloud_xyzrgbsift.read()
        path = self.path.value

        document = FileIO.load_json(path)
        if not isinstance(document, dict):
            document = {}

        self.write_count += 1
        logger.info("Write %d: %d points to %s", self.write_count, len(cloud), path)

        entries = cloud_to_entries(cloud)
        existing = document.get("cloud")
        if isinstance(existing, list):
            existing.extend(entries)
        else:
            document["cloud"] = entries

        FileIO.save_json(document, path)
