"""Error kinds raised while converting a slide, with their process exit codes."""

EXIT_SUCCESS = 0
EXIT_USAGE = 64
EXIT_ABORTED = 130


class ScnPlanesError(Exception):
    """Base class for fatal conversion errors."""

    exit_code = 1
    message = "Conversion failed"

    def __init__(self, detail=None):
        self.detail = detail
        text = self.message if not detail else f"{self.message}: {detail}"
        super().__init__(text)


class ContainerOpenError(ScnPlanesError):
    exit_code = 1
    message = "Could not open Leica .scn file"


class MetadataParseError(ScnPlanesError):
    exit_code = 2
    message = "Could not parse XML description"


class ImageReadError(ScnPlanesError):
    exit_code = 3
    message = "Could not read image from .scn file"


class AllocationError(ScnPlanesError):
    exit_code = 4
    message = "Could not allocate memory for image"


class PlaneWriteError(ScnPlanesError):
    exit_code = 5
    message = "Could not write plane"
