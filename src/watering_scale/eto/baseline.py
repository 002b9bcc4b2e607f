"""Baseline ETo raster reader.

The baseline data file is a global raster of historical annual potential ETo.
It starts with a 32 byte header::

    byte  0      format version (uint8, <= 1 supported)
    bytes 1-4    width in pixels (big-endian uint32)
    bytes 5-8    height in pixels (big-endian uint32)
    byte  9      bit depth (uint8, must be 8)
    bytes 10-13  minimum ETo (big-endian float32)
    bytes 14-17  scaling factor (big-endian float32)
    bytes 18-31  reserved

followed by width x height single-byte pixels in row-major order. The
maximum pixel value marks locations with no data. The image excludes the
northernmost 10 degrees and the southernmost 30 degrees of latitude.

All offsets handed to a byte source are absolute file offsets.
"""

import asyncio
import logging
import math
import struct
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from watering_scale.config import HTTP_TIMEOUT_SECONDS, USER_AGENT
from watering_scale.models import BaselineEToRasterMeta, GeoCoordinates

logger = logging.getLogger(__name__)

HEADER_SIZE = 32
MAX_VERSION = 1
SUPPORTED_BIT_DEPTH = 8
CROPPED_NORTH_DEGREES = 10
CROPPED_SOUTH_DEGREES = 30
_HEADER_FORMAT = ">BIIBff"


class BaselineEToError(Exception):
    """Error retrieving the baseline ETo, with an HTTP status hint."""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class DataUnavailableError(BaselineEToError):
    """The data file or pixel could not be read, or the pixel has no data."""
    status_code = 503


class OutOfBoundsError(BaselineEToError):
    """The coordinates fall outside of the raster extent."""
    status_code = 400


class UnsupportedFormatError(BaselineEToError):
    """The data file uses a version or bit depth that is not supported."""
    status_code = 500


class NotInitializedError(BaselineEToError):
    """The file header has not been read yet."""
    status_code = 503


class BaselineEToByteSource(ABC):
    """Random access to the bytes of the baseline ETo data file."""

    @abstractmethod
    async def read_bytes(self, offset: int, length: int) -> bytes:
        """Read `length` bytes starting at the absolute file `offset`.

        Raises:
            DataUnavailableError: If the bytes cannot be retrieved
        """

    async def read_header_bytes(self) -> bytes:
        return await self.read_bytes(0, HEADER_SIZE)

    async def read_byte(self, offset: int) -> int:
        data = await self.read_bytes(offset, 1)
        if len(data) != 1:
            raise DataUnavailableError(f"No byte at offset {offset} of the data file.")
        return data[0]


class FileByteSource(BaselineEToByteSource):
    """Reads the data file from the local filesystem."""

    def __init__(self, path: str):
        self.path = Path(path)

    async def read_bytes(self, offset: int, length: int) -> bytes:
        try:
            return await asyncio.to_thread(self._read, offset, length)
        except OSError as e:
            logger.error(f"Error reading {self.path} at offset {offset}: {e}")
            raise DataUnavailableError(f"Data file could not be read ({self.path.name}).")

    def _read(self, offset: int, length: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(offset)
            return f.read(length)


class HttpRangeByteSource(BaselineEToByteSource):
    """Reads the data file from object storage using HTTP range requests."""

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=HTTP_TIMEOUT_SECONDS
        )

    async def read_bytes(self, offset: int, length: int) -> bytes:
        headers = {"Range": f"bytes={offset}-{offset + length - 1}"}
        try:
            response = await self.client.get(self.url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching bytes {offset}-{offset + length - 1} of baseline ETo data: {e}")
            raise DataUnavailableError("Data file could not be retrieved.")

        # Servers that ignore the Range header return the whole file.
        if response.status_code == 200:
            return response.content[offset:offset + length]
        return response.content

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()


class BaselineEToReader:
    """Calculates the average daily potential ETo for a location.

    `read_header` must be awaited before `get_average_daily_eto`.
    """

    def __init__(self, source: BaselineEToByteSource):
        self.source = source
        self.meta: Optional[BaselineEToRasterMeta] = None

    async def read_header(self) -> BaselineEToRasterMeta:
        """Read and validate the data file header.

        Returns:
            The parsed file metadata

        Raises:
            DataUnavailableError: If the header could not be retrieved
            UnsupportedFormatError: If the version or bit depth is not supported
        """
        header = await self.source.read_header_bytes()
        if len(header) < HEADER_SIZE:
            raise DataUnavailableError("Data file header is incomplete.")

        version, width, height, bit_depth, minimum_eto, scaling_factor = struct.unpack_from(
            _HEADER_FORMAT, header
        )

        if version > MAX_VERSION:
            raise UnsupportedFormatError(
                f"Unsupported data file version {version}. "
                f"The maximum supported version is {MAX_VERSION}."
            )
        if bit_depth != SUPPORTED_BIT_DEPTH:
            raise UnsupportedFormatError("Bit depths other than 8 are not currently supported.")

        latitude_span = 180 - CROPPED_NORTH_DEGREES - CROPPED_SOUTH_DEGREES
        self.meta = BaselineEToRasterMeta(
            version=version,
            width=width,
            height=height,
            bit_depth=bit_depth,
            minimum_eto=minimum_eto,
            scaling_factor=scaling_factor,
            origin_x=width // 2,
            origin_y=math.floor(height / latitude_span * (90 - CROPPED_NORTH_DEGREES)),
        )
        logger.info(f"Loaded baseline ETo header: {width}x{height}, version {version}")
        return self.meta

    def pixel_offset(self, coordinates: GeoCoordinates) -> int:
        """Offset of the pixel for the coordinates, relative to the start of the pixel data."""
        meta = self._require_meta()
        latitude_span = 180 - CROPPED_NORTH_DEGREES - CROPPED_SOUTH_DEGREES
        # Longitude 180 wraps around to -180 on the same row
        x = math.floor(meta.origin_x + meta.width * coordinates.lon / 360) % meta.width
        y = math.floor(meta.origin_y - meta.height * coordinates.lat / latitude_span)
        return y * meta.width + x

    async def get_average_daily_eto(self, coordinates: GeoCoordinates, precision: Optional[int] = None) -> float:
        """Retrieve the average daily potential ETo for a location.

        Args:
            coordinates: Location to retrieve the ETo for
            precision: Number of significant digits to round to

        Returns:
            Average daily potential ETo, in the raster's units per day

        Raises:
            NotInitializedError: If the header has not been read
            OutOfBoundsError: If the location was cropped from the raster
            DataUnavailableError: If the pixel could not be read or has no data
        """
        meta = self._require_meta()
        offset = self.pixel_offset(coordinates)

        if offset < 0 or offset >= meta.width * meta.height:
            raise OutOfBoundsError("Specified location is out of bounds.")

        try:
            value = await self.source.read_byte(offset + HEADER_SIZE)
        except DataUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error reading baseline ETo for {coordinates}: {e}")
            raise DataUnavailableError(
                "An unexpected error occurred while retrieving the baseline ETo for this location."
            )

        if value == (1 << meta.bit_depth) - 1:
            raise DataUnavailableError("ETo data is not available for this location.", status_code=500)

        eto = (value * meta.scaling_factor + meta.minimum_eto) / 365
        if precision:
            return float(f"{eto:.{precision}g}")
        return eto

    def _require_meta(self) -> BaselineEToRasterMeta:
        if self.meta is None:
            raise NotInitializedError("Baseline ETo is not initialized.")
        return self.meta
