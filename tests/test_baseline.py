"""
Tests for the baseline ETo raster reader.
"""

import httpx
import pytest

from watering_scale.eto.baseline import (
    BaselineEToReader, DataUnavailableError, FileByteSource, HttpRangeByteSource,
    NotInitializedError, OutOfBoundsError, UnsupportedFormatError
)
from watering_scale.models import GeoCoordinates

from fakes import InMemoryByteSource, make_raster

ORIGIN = GeoCoordinates(lat=0, lon=0)
DATA_URL = "https://data.example/Baseline_ETo_Data.bin"


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def small_raster():
    """2x2 raster whose pixel at the origin (offset 3) has the value 10."""
    return make_raster(2, 2, bytes([1, 2, 3, 10]))


class TestReadHeader:
    """Test header parsing and validation."""

    async def test_parses_header(self, small_raster):
        reader = BaselineEToReader(InMemoryByteSource(small_raster))
        meta = await reader.read_header()

        assert meta.width == 2
        assert meta.height == 2
        assert meta.bit_depth == 8
        assert meta.minimum_eto == 0.0
        assert meta.scaling_factor == 1.0
        assert (meta.origin_x, meta.origin_y) == (1, 1)
        assert reader.meta == meta

    async def test_full_size_origin(self):
        source = InMemoryByteSource(make_raster(43200, 16800, b""))
        meta = await BaselineEToReader(source).read_header()
        assert meta.origin_x == 21600
        assert meta.origin_y == 9600

    async def test_rejects_newer_version(self):
        reader = BaselineEToReader(InMemoryByteSource(make_raster(2, 2, bytes(4), version=2)))
        with pytest.raises(UnsupportedFormatError):
            await reader.read_header()
        assert reader.meta is None

    async def test_rejects_other_bit_depths(self):
        reader = BaselineEToReader(InMemoryByteSource(make_raster(2, 2, bytes(8), bit_depth=16)))
        with pytest.raises(UnsupportedFormatError) as exc_info:
            await reader.read_header()
        assert exc_info.value.status_code == 500

    async def test_truncated_header(self):
        reader = BaselineEToReader(InMemoryByteSource(b"\x01\x00"))
        with pytest.raises(DataUnavailableError):
            await reader.read_header()


class TestAverageDailyETo:
    """Test pixel lookup and value conversion."""

    async def test_requires_header(self):
        reader = BaselineEToReader(InMemoryByteSource(b""))
        with pytest.raises(NotInitializedError) as exc_info:
            await reader.get_average_daily_eto(ORIGIN)
        assert exc_info.value.status_code == 503

    async def test_reads_pixel_after_header(self, small_raster):
        source = InMemoryByteSource(small_raster)
        reader = BaselineEToReader(source)
        await reader.read_header()

        assert reader.pixel_offset(ORIGIN) == 3
        eto = await reader.get_average_daily_eto(ORIGIN)

        assert source.reads[-1] == 35
        assert eto == pytest.approx(10 / 365)

    async def test_longitude_180_wraps_to_the_same_row(self, small_raster):
        reader = BaselineEToReader(InMemoryByteSource(small_raster))
        await reader.read_header()

        assert reader.pixel_offset(GeoCoordinates(lat=0, lon=180)) == 2
        assert reader.pixel_offset(GeoCoordinates(lat=0, lon=-180)) == 2

    async def test_rounds_to_significant_digits(self, small_raster):
        reader = BaselineEToReader(InMemoryByteSource(small_raster))
        await reader.read_header()
        assert await reader.get_average_daily_eto(ORIGIN, 3) == 0.0274

    async def test_applies_minimum_and_scaling_factor(self):
        raster = make_raster(2, 2, bytes([0, 0, 0, 100]), minimum_eto=365.0, scaling_factor=7.3)
        reader = BaselineEToReader(InMemoryByteSource(raster))
        await reader.read_header()
        assert await reader.get_average_daily_eto(ORIGIN) == pytest.approx((100 * 7.3 + 365) / 365, rel=1e-6)

    async def test_nodata_pixel(self):
        reader = BaselineEToReader(InMemoryByteSource(make_raster(2, 2, bytes([0, 0, 0, 255]))))
        await reader.read_header()
        with pytest.raises(DataUnavailableError) as exc_info:
            await reader.get_average_daily_eto(ORIGIN)
        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize("lat", [85.0, -75.0])
    async def test_cropped_latitudes_are_out_of_bounds(self, small_raster, lat):
        reader = BaselineEToReader(InMemoryByteSource(small_raster))
        await reader.read_header()
        with pytest.raises(OutOfBoundsError) as exc_info:
            await reader.get_average_daily_eto(GeoCoordinates(lat=lat, lon=0))
        assert exc_info.value.status_code == 400

    async def test_missing_pixel_data(self):
        reader = BaselineEToReader(InMemoryByteSource(make_raster(2, 2, bytes(2))))
        await reader.read_header()
        with pytest.raises(DataUnavailableError):
            await reader.get_average_daily_eto(ORIGIN)


class TestByteSources:
    """Test reading the data file from disk and over HTTP."""

    async def test_file_source(self, tmp_path, small_raster):
        path = tmp_path / "Baseline_ETo_Data.bin"
        path.write_bytes(small_raster)

        reader = BaselineEToReader(FileByteSource(str(path)))
        await reader.read_header()
        assert await reader.get_average_daily_eto(ORIGIN, 3) == 0.0274

    async def test_missing_file(self, tmp_path):
        reader = BaselineEToReader(FileByteSource(str(tmp_path / "missing.bin")))
        with pytest.raises(DataUnavailableError):
            await reader.read_header()

    async def test_http_range_requests(self, small_raster):
        ranges = []

        def handler(request: httpx.Request) -> httpx.Response:
            ranges.append(request.headers["Range"])
            start, end = request.headers["Range"].removeprefix("bytes=").split("-")
            return httpx.Response(206, content=small_raster[int(start):int(end) + 1])

        source = HttpRangeByteSource(DATA_URL, client=mock_client(handler))
        reader = BaselineEToReader(source)
        await reader.read_header()
        eto = await reader.get_average_daily_eto(ORIGIN)
        await source.aclose()

        assert ranges == ["bytes=0-31", "bytes=35-35"]
        assert eto == pytest.approx(10 / 365)

    async def test_http_server_ignoring_range(self, small_raster):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=small_raster)

        source = HttpRangeByteSource(DATA_URL, client=mock_client(handler))
        assert await source.read_byte(35) == 10

    async def test_http_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        source = HttpRangeByteSource(DATA_URL, client=mock_client(handler))
        with pytest.raises(DataUnavailableError):
            await source.read_header_bytes()
