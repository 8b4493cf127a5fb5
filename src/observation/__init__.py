"""
Frame sources for the detection loop.

Each source implements the FrameSource interface and returns FrameData
objects; the pipeline never touches camera APIs directly.
"""

from .base import FrameSource, SourceConfig, describe_stream_error
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .synthetic_source import SyntheticSource

__all__ = [
    "FrameSource",
    "SourceConfig",
    "describe_stream_error",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "SyntheticSource",
]
