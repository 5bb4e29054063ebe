"""Extract full-resolution channel planes from Leica SCN400F slides."""

from loguru import logger

# Library users opt in to log output; the CLI installs its own sink
logger.disable("scn_planes")

__version__ = "0.1.0"
