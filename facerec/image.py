"""
Image files as flat pixel buffers.

An Image holds channels * height * width unsigned bytes in the interleaved
order of the file (RGBRGB... for color, one byte per pixel for grayscale).
Decoding and encoding are done with Pillow.
"""

import numpy as np
from PIL import Image as PILImage, UnidentifiedImageError
from facerec.errors import DataIOError, DimensionError

GRAYSCALE_MODES = ('1', 'L', 'LA', 'I', 'I;16', 'F', 'P')


class Image:
    """
    Pixel buffer of a single image.

    Attributes:
        channels: 1 for grayscale, 3 for color
        height: number of pixel rows
        width: number of pixel columns
        pixels: uint8 array of channels * height * width elements
    """

    def __init__(self, channels=0, height=0, width=0):
        self.channels = channels
        self.height = height
        self.width = width
        self.pixels = np.zeros(channels * height * width, dtype=np.uint8)

    @property
    def size(self):
        return self.channels * self.height * self.width

    def read(self, path):
        """
        Decode an image file into this buffer.

        Palette and grayscale files are read with one channel, everything
        else as RGB.

        Raises:
            DataIOError: if the file is missing or cannot be decoded
        """
        try:
            with PILImage.open(path) as img:
                mode = 'L' if img.mode in GRAYSCALE_MODES else 'RGB'
                arr = np.asarray(img.convert(mode), dtype=np.uint8)
        except (OSError, UnidentifiedImageError) as e:
            raise DataIOError(f"cannot read image '{path}': {e}") from e

        self.height, self.width = arr.shape[:2]
        self.channels = 1 if arr.ndim == 2 else arr.shape[2]
        self.pixels = arr.reshape(-1).copy()

        return self

    def write(self, path):
        """Encode this buffer to an image file; the format follows the extension."""
        if self.pixels.size != self.size:
            raise DimensionError(
                f"pixel buffer has {self.pixels.size} elements, expected {self.size}"
            )

        if self.channels == 1:
            arr = self.pixels.reshape((self.height, self.width))
        else:
            arr = self.pixels.reshape((self.height, self.width, self.channels))

        try:
            PILImage.fromarray(arr).save(path)
        except (OSError, ValueError) as e:
            raise DataIOError(f"cannot write image '{path}': {e}") from e
