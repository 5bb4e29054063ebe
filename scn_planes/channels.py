"""Channel extraction from decoded sub-image buffers."""

import numpy as np
from loguru import logger

from scn_planes.errors import ImageReadError

CHANNEL_NAMES = {0: "red", 1: "green", 2: "blue"}


def _to_uint8(component):
    # type: (np.ndarray) -> np.ndarray
    """Reduce one colour component to 8 bits, keeping the high byte."""
    dtype = component.dtype
    if dtype == np.uint8:
        return component.astype(np.uint8, copy=True)
    if dtype == np.bool_:
        return component.astype(np.uint8) * 255
    if np.issubdtype(dtype, np.unsignedinteger):
        shift = dtype.itemsize * 8 - 8
        return (component >> shift).astype(np.uint8)
    raise ImageReadError(f"unsupported sample type {dtype}")


def extract_channel(pixels, channel_id, rows_bottom_up=False):
    # type: (np.ndarray, int, bool) -> np.ndarray
    """Select one colour component of a decoded sub-image.

    Greyscale buffers carry the same value in every component, so any
    channel id returns the grey plane.

    :param pixels: Decoded buffer shaped (Y, X) or (Y, X, samples)
    :param channel_id: 0 (red), 1 (green) or 2 (blue)
    :param rows_bottom_up: Return rows in bottom-up order
    :return: C-contiguous uint8 array of shape (Y, X)
    :raises ValueError: If channel_id is not 0, 1 or 2
    :raises ImageReadError: If the buffer shape or sample type is unsupported
    """
    if channel_id not in CHANNEL_NAMES:
        raise ValueError(f"Invalid channel id {channel_id}")

    if pixels.ndim == 2:
        component = pixels
    elif pixels.ndim == 3:
        samples = pixels.shape[2]
        if samples >= 3:
            component = pixels[:, :, channel_id]
        else:
            logger.debug(f"{samples}-sample buffer treated as greyscale")
            component = pixels[:, :, 0]
    else:
        raise ImageReadError(f"expected a 2D or 3D pixel buffer, got {pixels.ndim}D")

    if rows_bottom_up:
        component = component[::-1, :]

    return np.ascontiguousarray(_to_uint8(component))
