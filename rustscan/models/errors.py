class SegmentationError(ValueError):
    """Base class for errors raised by the segmentation engine."""


class InvalidImageError(SegmentationError):
    """Image dimensions are non-positive or the sample count is wrong."""


class DimensionMismatchError(SegmentationError):
    """A mask does not cover exactly width * height pixels of its image."""
