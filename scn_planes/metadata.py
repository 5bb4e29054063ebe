"""Resolve the Leica SCN XML description into the directories to extract.

The first TIFF directory of an ``.scn`` file carries an XML document of the
form::

    <scn xmlns="http://www.leica-microsystems.com/scn/2010/10/01">
      <collection sizeX=".." sizeY="..">
        <image>
          <view sizeX=".." sizeY=".." .../>
          <pixels>
            <dimension r="0" c="0" ifd="4" sizeX=".." sizeY=".."/>
            ...

Images whose view has the collection's size are the slide overview and are
skipped. For every other image, the ``r=0`` dimensions name the TIFF
directory holding each channel at full resolution.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union
import xml.etree.ElementTree as ET
from loguru import logger

from scn_planes.errors import MetadataParseError
from scn_planes.models import ResolvedMetadata, SelectionEntry

CHANNEL_IDS = (0, 1, 2)
FULL_RESOLUTION = 0


def _local_name(tag):
    # type: (str) -> str
    """Strip the ``{namespace}`` part of an element tag."""
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _children(element, name):
    # type: (ET.Element, str) -> Iterator[ET.Element]
    for child in element:
        if _local_name(child.tag) == name:
            yield child


def _descendants(element, name):
    # type: (ET.Element, str) -> Iterator[ET.Element]
    for node in element.iter():
        if node is not element and _local_name(node.tag) == name:
            yield node


def _int_attribute(element, name):
    # type: (ET.Element, str) -> int
    """Read an integer attribute, failing closed on missing or bad values."""
    value = element.get(name)
    if value is None:
        raise MetadataParseError(
            f"<{_local_name(element.tag)}> is missing attribute '{name}'"
        )
    try:
        return int(value.strip())
    except ValueError as e:
        raise MetadataParseError(
            f"<{_local_name(element.tag)}> attribute {name}={value!r} is not an integer"
        ) from e


@dataclass
class _ImageAccumulator:
    """Per-image state, rebuilt for every ``<image>`` element."""

    directories: Dict[int, int] = field(default_factory=dict)
    view_count: int = 0
    overview_views: int = 0

    @property
    def accepted(self) -> bool:
        return self.view_count > 0 and self.overview_views == 0


def parse_description(description: Union[str, bytes]) -> ET.Element:
    """Parse the XML description and return its root element."""
    if description is None:
        raise MetadataParseError("no XML description found in first directory")
    if isinstance(description, bytes):
        description = description.decode("utf-8", errors="replace")
    if not description.strip():
        raise MetadataParseError("XML description is empty")
    try:
        return ET.fromstring(description.strip())
    except ET.ParseError as e:
        raise MetadataParseError(str(e)) from e


def _collection_size(root):
    # type: (ET.Element) -> tuple
    if _local_name(root.tag) == "collection":
        collection = root
    else:
        collection = next(_descendants(root, "collection"), None)
    if collection is None:
        raise MetadataParseError("no <collection> element")
    return _int_attribute(collection, "sizeX"), _int_attribute(collection, "sizeY")


def _scan_image(image, collection_x, collection_y):
    # type: (ET.Element, int, int) -> _ImageAccumulator
    acc = _ImageAccumulator()

    for view in _children(image, "view"):
        view_x = _int_attribute(view, "sizeX")
        view_y = _int_attribute(view, "sizeY")
        acc.view_count += 1
        # A view sharing either axis with the collection is not a field view
        if view_x == collection_x or view_y == collection_y:
            acc.overview_views += 1

    for pixels in _children(image, "pixels"):
        for dimension in _children(pixels, "dimension"):
            if _int_attribute(dimension, "r") != FULL_RESOLUTION:
                continue
            channel_id = _int_attribute(dimension, "c")
            directory_index = _int_attribute(dimension, "ifd")
            if channel_id not in CHANNEL_IDS:
                raise MetadataParseError(
                    f"unsupported channel id c={channel_id} (expected 0, 1 or 2)"
                )
            if directory_index < 1:
                raise MetadataParseError(
                    f"dimension ifd={directory_index} does not name an image directory"
                )
            acc.directories[channel_id] = directory_index

    return acc


def resolve_metadata(description: Union[str, bytes]) -> ResolvedMetadata:
    """Build the ordered selection list from an SCN XML description.

    Args:
        description: Raw ``ImageDescription`` text of the first directory

    Returns:
        ResolvedMetadata with the collection size and one SelectionEntry per
        full-resolution channel of every accepted field

    Raises:
        MetadataParseError: If the XML is malformed, lacks a collection or
            carries missing/non-integer attributes, an unknown channel id or
            a directory index used twice
    """
    root = parse_description(description)
    collection_x, collection_y = _collection_size(root)
    logger.debug(f"Collection size: {collection_x} x {collection_y}")

    selections = []  # type: List[SelectionEntry]
    claimed = {}  # type: Dict[int, SelectionEntry]
    field_index = 0
    skipped = 0

    for image_number, image in enumerate(_descendants(root, "image")):
        acc = _scan_image(image, collection_x, collection_y)

        if not acc.accepted:
            skipped += 1
            logger.debug(
                f"Skipping image {image_number}: no view distinct from the collection"
            )
            continue

        for channel_id in sorted(acc.directories):
            entry = SelectionEntry(
                directory_index=acc.directories[channel_id],
                channel_id=channel_id,
                field_index=field_index,
            )
            previous = claimed.get(entry.directory_index)
            if previous is not None:
                raise MetadataParseError(
                    f"directory {entry.directory_index} is claimed by field "
                    f"{previous.field_index} and field {field_index}"
                )
            claimed[entry.directory_index] = entry
            selections.append(entry)

        logger.debug(
            f"Image {image_number} -> field {field_index}, "
            f"channels {sorted(acc.directories)}"
        )
        field_index += 1

    logger.info(
        f"Resolved {len(selections)} plane(s) in {field_index} field(s), "
        f"skipped {skipped} overview image(s)"
    )
    return ResolvedMetadata(
        collection_size_x=collection_x,
        collection_size_y=collection_y,
        selections=tuple(selections),
        skipped_images=skipped,
        field_count=field_index,
    )


def format_selections(resolved: ResolvedMetadata, name: Optional[str] = None) -> str:
    """Render the selection list as a human readable table."""
    header = f"Collection {resolved.collection_size_x} x {resolved.collection_size_y}"
    if name:
        header = f"{name}: {header}"
    lines = [header, f"{'ifd':>6} {'field':>6} {'channel':>8}"]
    for entry in resolved.selections:
        lines.append(
            f"{entry.directory_index:>6} {entry.field_index:>6} {entry.channel_id:>8}"
        )
    return "\n".join(lines)
