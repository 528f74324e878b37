#!/usr/bin/env python3
"""
Convert a depth image (or XYZ map) into a point cloud file.

Examples:
    python scripts/convert_depth.py --depth depth.png --camera-info camera.yaml \
        --color color.png --output out/cloud.pcd
    python scripts/convert_depth.py --xyz xyz.npy --mask mask.png --output out/cloud.ply
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from depth_cloud.config import load_config
from depth_cloud.core import DepthConverter, JSONWriter, PointCloudProcessor, StreamRecorder, connect
from depth_cloud.utils import FileIO, Visualizer
from depth_cloud.utils.cli import add_config_arg, add_log_level_arg, setup_logging

logger = logging.getLogger("convert_depth")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Convert depth data into a point cloud")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--depth", help="16-bit depth image in millimeters")
    source.add_argument("--xyz", help="HxWx3 XYZ map (.npy) in meters")
    p.add_argument("--camera-info", help="Camera intrinsics YAML (required with --depth)")
    p.add_argument("--color", help="BGR color image aligned with the depth data")
    p.add_argument("--mask", help="Mask image; zero pixels are excluded")
    p.add_argument("--output", required=True, help="Output point cloud file (.pcd, .ply)")
    p.add_argument("--json", help="Also write the cloud into this JSON document")
    p.add_argument("--keep-nan", action="store_true", help="Keep invalid points in organized clouds")
    p.add_argument("--downsample", action="store_true",
                   help="Voxel-downsample the cloud before saving (size from config)")
    p.add_argument("--voxel-size", type=float, help="Voxel size in meters; implies --downsample")
    p.add_argument("--show", action="store_true", help="Display the resulting cloud")
    add_config_arg(p)
    add_log_level_arg(p)
    return p


def handler_name(args: argparse.Namespace) -> str:
    if args.depth:
        name = "process_depth"
        name += "_mask" if args.mask else ""
        name += "_color" if args.color else ""
    else:
        name = "process_depth_xyz"
        name += "_color" if args.color else ""
        name += "_mask" if args.mask else ""
    return name


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)
    setup_logging(args.log_level or cfg.logging.level)

    if args.depth and not args.camera_info:
        logger.error("--camera-info is required with --depth")
        return 2

    converter = DepthConverter(handlers=[handler_name(args)], config=cfg)
    if args.keep_nan:
        converter.set_property("remove_nan", False)
    recorder = StreamRecorder()
    connect(converter.out_cloud_xyz, recorder)
    connect(converter.out_cloud_xyzrgb, recorder)

    if args.depth:
        converter.in_depth.write(FileIO.load_depth(args.depth))
        converter.in_camera_info.write(FileIO.load_camera_info(args.camera_info))
    else:
        converter.in_depth_xyz.write(FileIO.load_xyz_map(args.xyz))
    if args.color:
        converter.in_color.write(FileIO.load_image(args.color))
    if args.mask:
        converter.in_mask.write(FileIO.load_mask(args.mask))

    converter.initialize()
    converter.start()
    converter.dispatch()
    converter.stop()
    converter.finish()

    cloud = recorder.last
    if cloud is None:
        logger.error("No point cloud produced")
        return 1
    logger.info("Produced %r with %d valid points", cloud, int(cloud.valid_mask().sum()))

    processor = PointCloudProcessor(config=cfg)
    if args.downsample or args.voxel_size:
        pcd = processor.downsample_point_cloud(processor.to_open3d(cloud), args.voxel_size)
        cloud = processor.from_open3d(pcd)
        logger.info("Downsampled to %d points", len(cloud))

    if not processor.save_point_cloud(cloud, args.output):
        return 1

    if args.json:
        writer = JSONWriter(handlers=["write_xyzrgbsift"], config=cfg, path=args.json)
        writer.initialize()
        writer.in_cloud_xyzrgbsift.write(cloud)
        writer.dispatch()

    if args.show:
        Visualizer.draw_point_clouds([cloud], window_name=os.path.basename(args.output))

    return 0


if __name__ == "__main__":
    sys.exit(main())
