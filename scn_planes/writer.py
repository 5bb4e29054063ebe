"""Serialization of extracted planes to raw binary files."""

from pathlib import Path
import numpy as np
from loguru import logger

from scn_planes.errors import AllocationError, PlaneWriteError
from scn_planes.models import Plane


def plane_filename(prefix, field_index, channel_id, width, height):
    # type: (str, int, int, int, int) -> str
    """Build ``{prefix}Image{A}_Channel{B}_X{C}_Y{D}.bin``.

    The prefix is prepended as-is, so it may be a directory ending in a
    separator or a partial file name.
    """
    return f"{prefix}Image{field_index}_Channel{channel_id}_X{width}_Y{height}.bin"


def write_plane(plane, prefix, make_dirs=False):
    # type: (Plane, str, bool) -> Path
    """Write a plane as unsigned 8-bit samples, row-major, without header.

    An existing file with the same name is overwritten. Nothing is removed
    if the write fails part-way.

    :param plane: Extracted plane
    :param prefix: Output path prefix
    :param make_dirs: Create the parent directory if it is missing
    :return: Path of the written file
    :raises PlaneWriteError: If the file cannot be written
    :raises AllocationError: If the output buffer cannot be allocated
    """
    output_path = Path(
        plane_filename(
            str(prefix), plane.field_index, plane.channel_id, plane.width, plane.height
        )
    )
    data = np.ascontiguousarray(plane.data, dtype=np.uint8)

    try:
        if make_dirs:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "wb") as fh:
            fh.write(memoryview(data.reshape(-1)))
    except MemoryError as e:
        raise AllocationError(f"{output_path}") from e
    except OSError as e:
        raise PlaneWriteError(f"{output_path}: {e}") from e

    logger.debug(f"Wrote {data.size} bytes to {output_path}")
    return output_path
