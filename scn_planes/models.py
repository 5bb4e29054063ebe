"""Data structures shared by the resolver, scanner and writer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple
import numpy as np


@dataclass(frozen=True)
class SelectionEntry:
    """One full-resolution sub-image chosen from the slide metadata.

    :ivar directory_index: 0-based TIFF directory index (the ``ifd`` attribute)
    :ivar channel_id: Colour component to keep (0=red, 1=green, 2=blue)
    :ivar field_index: 0-based index of the accepted field
    """

    directory_index: int
    channel_id: int
    field_index: int


@dataclass(frozen=True)
class ResolvedMetadata:
    """Result of resolving the slide XML into a selection list."""

    collection_size_x: int
    collection_size_y: int
    selections: Tuple[SelectionEntry, ...]
    skipped_images: int = 0
    field_count: int = 0

    def lookup(self) -> Dict[int, SelectionEntry]:
        """Map directory index to its selection entry."""
        return {entry.directory_index: entry for entry in self.selections}


@dataclass
class Plane:
    """Single-channel 8-bit plane extracted from one sub-image.

    :ivar data: 2D uint8 array (Y, X)
    :ivar field_index: Field the plane belongs to
    :ivar channel_id: Channel the plane was taken from
    """

    data: np.ndarray
    field_index: int
    channel_id: int

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])


@dataclass
class ExtractOptions:
    """Run-time switches for one extraction."""

    strict: bool = False
    rows_bottom_up: bool = False
    make_dirs: bool = False


@dataclass
class ExtractionSummary:
    """Outcome of one pass over the container."""

    written: List[Path] = field(default_factory=list)
    missing: List[SelectionEntry] = field(default_factory=list)
