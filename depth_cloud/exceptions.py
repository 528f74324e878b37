class DepthCloudError(Exception):
    """Base class for errors raised by depth_cloud components"""


class DimensionMismatchError(DepthCloudError, ValueError):
    def __init__(self, message: str, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class StreamEmptyError(DepthCloudError):
    def __init__(self, stream_name: str):
        super().__init__(f"No data available on stream: {stream_name}")
        self.stream_name = stream_name


class ComponentError(DepthCloudError):
    pass
