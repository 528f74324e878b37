import os
import json
import logging
import numpy as np
import cv2
import yaml
from typing import Union, Optional

from ..core.camera_info import CameraInfo

logger = logging.getLogger(__name__)


class FileIO:
    @staticmethod
    def ensure_directory_exists(directory: str) -> None:
        """Ensure a directory exists, create it if it doesn't"""
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

    @staticmethod
    def _read_image(file_path: str, flags: int) -> np.ndarray:
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Image file not found: {file_path}")

        image = cv2.imread(file_path, flags)
        if image is None:
            raise ValueError(f"Failed to load image: {file_path}")
        return image

    @staticmethod
    def load_depth(file_path: str) -> np.ndarray:
        """Load 16-bit depth image (millimeters)"""
        depth = FileIO._read_image(file_path, cv2.IMREAD_ANYDEPTH)
        if depth.dtype != np.uint16:
            raise ValueError(f"Depth image must be 16-bit, got {depth.dtype}: {file_path}")
        return depth

    @staticmethod
    def load_image(file_path: str) -> np.ndarray:
        """Load BGR color image"""
        return FileIO._read_image(file_path, cv2.IMREAD_COLOR)

    @staticmethod
    def load_mask(file_path: str) -> np.ndarray:
        """Load single channel mask image"""
        return FileIO._read_image(file_path, cv2.IMREAD_GRAYSCALE)

    @staticmethod
    def save_image(image: np.ndarray, file_path: str) -> bool:
        """Save image to file"""
        FileIO.ensure_directory_exists(os.path.dirname(file_path))
        return cv2.imwrite(file_path, image)

    @staticmethod
    def load_xyz_map(file_path: str) -> np.ndarray:
        """Load HxWx3 XYZ map stored with numpy.save"""
        xyz = np.load(file_path)
        if xyz.ndim != 3 or xyz.shape[2] != 3:
            raise ValueError(f"XYZ map must be HxWx3, got {xyz.shape}: {file_path}")
        return xyz.astype(np.float32, copy=False)

    @staticmethod
    def load_camera_info(file_path: str) -> CameraInfo:
        """Load camera intrinsics from YAML file"""
        with open(file_path, 'r') as file:
            data = yaml.safe_load(file) or {}
        return CameraInfo.from_dict(data.get("camera_info", data))

    @staticmethod
    def save_json(data: Union[dict, list], file_path: str) -> None:
        """Save data to JSON file, replacing its content"""
        FileIO.ensure_directory_exists(os.path.dirname(file_path))
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=4)

    @staticmethod
    def load_json(file_path: str) -> Optional[Union[dict, list]]:
        """Load data from JSON file, None when missing or unparseable"""
        if not os.path.exists(file_path):
            logger.debug("JSON file not found: %s", file_path)
            return None

        try:
            with open(file_path, 'r') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Error loading JSON %s: %s", file_path, e)
            return None
