import numpy as np
import pytest
import tifffile
from loguru import logger

SCN_NAMESPACE = "http://www.leica-microsystems.com/scn/2010/10/01"


def build_scn_xml(collection, images, namespace=SCN_NAMESPACE):
    """Render a Leica SCN style XML description.

    ``images`` is a list of dicts with ``views`` (list of (sizeX, sizeY))
    and ``dimensions`` (list of (r, c, ifd)).
    """
    size_x, size_y = collection
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    parts = [
        '<?xml version="1.0" encoding="utf-8"?>',
        f"<scn{xmlns}>",
        f'<collection name="slide" uuid="urn:uuid:0" sizeX="{size_x}" sizeY="{size_y}">',
        "<barcode>899633L</barcode>",
    ]
    for number, image in enumerate(images):
        parts.append(f'<image name="image {number}" uuid="urn:uuid:{number + 1}">')
        parts.append("<creationDate>2015-02-05T10:00:00.00Z</creationDate>")
        for view_x, view_y in image.get("views", []):
            parts.append(
                f'<view sizeX="{view_x}" sizeY="{view_y}" offsetX="0" offsetY="0" spacingZ="0"/>'
            )
        parts.append('<pixels sizeX="100" sizeY="100">')
        for r, c, ifd in image.get("dimensions", []):
            parts.append(f'<dimension sizeX="100" sizeY="100" r="{r}" c="{c}" ifd="{ifd}"/>')
        parts.append("</pixels>")
        parts.append("</image>")
    parts.append("</collection>")
    parts.append("</scn>")
    return "\n".join(parts)


def write_scn(path, description, directories):
    """Write a multi-directory TIFF whose first directory carries the XML."""
    with tifffile.TiffWriter(str(path), bigtiff=True) as tw:
        tw.write(
            np.zeros((16, 16, 3), dtype=np.uint8),
            photometric="rgb",
            description=description,
            metadata=None,
        )
        for data in directories:
            photometric = "rgb" if data.ndim == 3 else "minisblack"
            tw.write(data, photometric=photometric, metadata=None)
    return path


def rgb_directory(height, width, seed):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


# --- Fixtures ---


@pytest.fixture(autouse=True)
def _reset_loguru():
    yield
    logger.remove()
    logger.disable("scn_planes")


@pytest.fixture
def scn_xml():
    """Factory for SCN XML descriptions."""
    return build_scn_xml


@pytest.fixture
def make_scn(tmp_path):
    """Factory writing a synthetic SCN container into tmp_path."""

    def _make(description, directories, name="slide.scn"):
        return write_scn(tmp_path / name, description, directories)

    return _make


@pytest.fixture
def scenario_a_xml():
    """One field with a 2000 x 1500 view and three full resolution channels."""
    return build_scn_xml(
        (1000, 1000),
        [
            {
                "views": [(2000, 1500)],
                "dimensions": [(0, 0, 1), (0, 1, 2), (0, 2, 3)],
            }
        ],
    )


@pytest.fixture
def two_field_slide(make_scn):
    """Overview image followed by two fields, each with a reduced level.

    Directory layout:
      0  metadata
      1  overview (collection sized)
      2-4  field 0, channels 0-2, full resolution
      5  field 0, channel 0, r=1
      6-7  field 1, channels 0 and 2, full resolution
    """
    description = build_scn_xml(
        (640, 480),
        [
            {"views": [(640, 480)], "dimensions": [(0, 0, 1)]},
            {
                "views": [(64, 48)],
                "dimensions": [(0, 0, 2), (0, 1, 3), (0, 2, 4), (1, 0, 5)],
            },
            {"views": [(40, 30)], "dimensions": [(0, 0, 6), (0, 2, 7)]},
        ],
    )
    directories = [
        rgb_directory(48, 64, 1),
        rgb_directory(48, 64, 2),
        rgb_directory(48, 64, 3),
        rgb_directory(48, 64, 4),
        rgb_directory(24, 32, 5),
        rgb_directory(30, 40, 6),
        rgb_directory(30, 40, 7),
    ]
    path = make_scn(description, directories)
    return path, directories


@pytest.fixture
def rgb():
    """Factory for random (Y, X, 3) uint8 directories."""
    return rgb_directory
