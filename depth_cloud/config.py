import os
from dataclasses import dataclass, replace
from typing import Optional

import yaml

DEFAULT_CONFIG_PATH = "config/settings.yaml"


def _read(path: str) -> dict:
    with open(path, 'r') as file:
        return yaml.safe_load(file) or {}


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class DepthConverterSettings:
    remove_nan: bool = True


@dataclass(frozen=True)
class JSONWriterSettings:
    path: str = "output/cloud.json"


@dataclass(frozen=True)
class RegistrationSettings:
    negative: bool = False
    stddev_mul_thresh: float = 1.0
    mean_k: int = 50
    max_correspondence_distance: float = 0.05
    max_iterations: int = 30


@dataclass(frozen=True)
class PointCloudSettings:
    voxel_size: float = 0.01


@dataclass(frozen=True)
class Config:
    logging: LoggingSettings = LoggingSettings()
    depth_converter: DepthConverterSettings = DepthConverterSettings()
    json_writer: JSONWriterSettings = JSONWriterSettings()
    registration: RegistrationSettings = RegistrationSettings()
    point_cloud: PointCloudSettings = PointCloudSettings()


def load_config(path: Optional[str] = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from YAML file, falling back to defaults"""
    cfg = Config()
    if path and os.path.isfile(path):
        data = _read(path)
        cfg = replace(
            cfg,
            logging=replace(cfg.logging, **(data.get("logging") or {})),
            depth_converter=replace(cfg.depth_converter, **(data.get("depth_converter") or {})),
            json_writer=replace(cfg.json_writer, **(data.get("json_writer") or {})),
            registration=replace(cfg.registration, **(data.get("registration") or {})),
            point_cloud=replace(cfg.point_cloud, **(data.get("point_cloud") or {})),
        )
    return cfg
