"""
Utility functions for depth conversion
"""
from .file_io import FileIO
from .transformations import Transformations
from .visualization import Visualizer

__all__ = ['FileIO', 'Transformations', 'Visualizer']
