# -*- coding: utf-8 -*-
"""Single forward pass over the TIFF directories of a Leica SCN file.

Directory 0 carries the XML description. Every later directory is visited
once, in file order; only directories named by the resolved selection list
are decoded, split into their channel and written out.
"""

import struct
from pathlib import Path
from typing import Callable, Generator, Optional, Tuple, Union
import numpy as np
import tifffile
from loguru import logger

from scn_planes.channels import extract_channel
from scn_planes.errors import (
    AllocationError,
    ContainerOpenError,
    ImageReadError,
    MetadataParseError,
)
from scn_planes.metadata import resolve_metadata
from scn_planes.models import (
    ExtractionSummary,
    ExtractOptions,
    Plane,
    ResolvedMetadata,
    SelectionEntry,
)
from scn_planes.writer import write_plane

METADATA_DIRECTORY = 0
PLANARCONFIG_SEPARATE = 2

ProgressCallback = Callable[[str], None]


def open_container(path):
    # type: (Union[str, Path]) -> tifffile.TiffFile
    """Open an SCN container, mapping failures to ContainerOpenError."""
    try:
        return tifffile.TiffFile(str(path))
    except (OSError, tifffile.TiffFileError, ValueError) as e:
        raise ContainerOpenError(f"{path}: {e}") from e


def read_description(tif):
    # type: (tifffile.TiffFile) -> str
    """Return the ImageDescription of the first directory."""
    try:
        first = tif.pages[METADATA_DIRECTORY]
    except (IndexError, tifffile.TiffFileError) as e:
        raise MetadataParseError(f"container has no first directory: {e}") from e

    tag = first.tags.get("ImageDescription")
    if tag is None or not tag.value:
        raise MetadataParseError("first directory has no ImageDescription")
    value = tag.value
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return value


def iter_directories(tif, start=METADATA_DIRECTORY + 1):
    # type: (tifffile.TiffFile, int) -> Generator[Tuple[int, tifffile.TiffPage], None, None]
    """Yield ``(directory_index, page)`` in file order, starting at ``start``.

    A directory that cannot be reached ends the traversal.
    """
    pages = tif.pages
    directory_index = start
    while True:
        try:
            page = pages[directory_index]
        except IndexError:
            return
        except (tifffile.TiffFileError, ValueError, struct.error, EOFError) as e:
            logger.warning(f"Stopping at directory {directory_index}: {e}")
            return
        yield directory_index, page
        directory_index += 1


def samples_last(page, pixels):
    # type: (tifffile.TiffPage, np.ndarray) -> np.ndarray
    """Return a view of ``pixels`` with colour samples on the last axis."""
    if (
        pixels.ndim == 3
        and page.samplesperpixel > 1
        and int(page.planarconfig) == PLANARCONFIG_SEPARATE
    ):
        return np.moveaxis(pixels, 0, -1)
    return pixels


def decode_directory(page, entry, rows_bottom_up=False):
    # type: (tifffile.TiffPage, SelectionEntry, bool) -> Plane
    """Decode one selected directory and keep the requested channel.

    The decoded buffer only lives inside this call.
    """
    expected = (page.imagelength, page.imagewidth)
    try:
        pixels = page.asarray()
    except MemoryError as e:
        raise AllocationError(
            f"directory {entry.directory_index} ({expected[1]} x {expected[0]})"
        ) from e
    except Exception as e:
        raise ImageReadError(f"directory {entry.directory_index}: {e}") from e

    try:
        data = extract_channel(
            samples_last(page, pixels), entry.channel_id, rows_bottom_up=rows_bottom_up
        )
    except MemoryError as e:
        raise AllocationError(f"plane for directory {entry.directory_index}") from e
    finally:
        del pixels

    if data.shape != expected:
        raise ImageReadError(
            f"directory {entry.directory_index}: decoded plane shape {data.shape} "
            f"does not match {expected[1]} x {expected[0]}"
        )
    return Plane(data=data, field_index=entry.field_index, channel_id=entry.channel_id)


def scan_directories(tif, resolved, prefix, options=None, progress=None):
    # type: (tifffile.TiffFile, ResolvedMetadata, str, Optional[ExtractOptions], Optional[ProgressCallback]) -> ExtractionSummary
    """Walk the container once and write every selected plane.

    :param tif: Open container
    :param resolved: Selection list from the resolver
    :param prefix: Output path prefix
    :param options: Run-time switches
    :param progress: Optional callback receiving progress lines
    :return: Written files and selections that were never reached
    :raises ImageReadError: If a selected directory cannot be decoded, or
        when ``options.strict`` is set and a selection was never reached
    :raises AllocationError: If a buffer cannot be allocated
    """
    options = options or ExtractOptions()
    pending = resolved.lookup()
    summary = ExtractionSummary()

    for directory_index, page in iter_directories(tif):
        if not pending:
            break
        entry = pending.pop(directory_index, None)
        if entry is None:
            logger.debug(f"Directory {directory_index}: not selected")
            continue

        width, height = page.imagewidth, page.imagelength
        logger.debug(
            f"Directory {directory_index}: field {entry.field_index}, "
            f"channel {entry.channel_id}, {width} x {height}"
        )

        try:
            plane = decode_directory(
                page, entry, rows_bottom_up=options.rows_bottom_up
            )
            if progress:
                progress(f"Read: Successful ({width} x {height})")
            output_path = write_plane(plane, prefix, make_dirs=options.make_dirs)
        except MemoryError as e:
            raise AllocationError(f"directory {directory_index}") from e
        del plane
        if progress:
            progress(f"Writing {output_path}")
        logger.info(f"Wrote {output_path.name}")
        summary.written.append(output_path)

    summary.missing = sorted(pending.values(), key=lambda e: e.directory_index)
    for entry in summary.missing:
        logger.warning(
            f"Directory {entry.directory_index} (field {entry.field_index}, "
            f"channel {entry.channel_id}) was never reached"
        )
    if summary.missing and options.strict:
        raise ImageReadError(
            f"{len(summary.missing)} selected directories missing from container"
        )

    return summary


def scan_container(path, prefix, options=None, progress=None):
    # type: (Union[str, Path], str, Optional[ExtractOptions], Optional[ProgressCallback]) -> ExtractionSummary
    """Convert one SCN file into per-field, per-channel binary planes."""
    path = Path(path)
    logger.info(f"Processing {path.name}")

    with open_container(path) as tif:
        resolved = resolve_metadata(read_description(tif))
        summary = scan_directories(tif, resolved, prefix, options, progress)

    logger.info(f"{path.name}: wrote {len(summary.written)} plane(s)")
    return summary


def inspect_container(path):
    # type: (Union[str, Path]) -> ResolvedMetadata
    """Resolve the selection list of an SCN file without decoding pixels."""
    with open_container(path) as tif:
        return resolve_metadata(read_description(tif))
