"""
Unit tests for the source fetcher.

Tests cover:
- Local path resolution
- Remote downloads
- Retry on 5xx errors
- No retry on 4xx errors
- Cleanup
"""
from concurrent.futures import ThreadPoolExecutor

import pytest
import httpx
import respx
from tenacity import wait_none

from richness_report.config import settings
from richness_report.domain.exceptions import LoadError
from richness_report.infrastructure.source_fetcher import SourceFetcher, is_remote

SOURCE_URL = "https://data.example.org/orchids/occurrences.csv"


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """Skip backoff sleeps between retries."""
    monkeypatch.setattr(SourceFetcher._fetch.retry, "wait", wait_none())


@pytest.fixture
def fetcher():
    fetcher = SourceFetcher()
    yield fetcher
    fetcher.close()


# ============================================================
# Local Source Tests
# ============================================================

class TestLocalSources:
    """Tests for local path handling."""

    def test_is_remote(self):
        """Only http(s) URLs are remote."""
        assert is_remote("https://example.org/a.csv")
        assert is_remote("http://example.org/a.csv")
        assert not is_remote("data/a.csv")
        assert not is_remote("/tmp/a.geojson")

    def test_existing_path_returned(self, fetcher, tmp_path):
        """Existing files are returned unchanged."""
        path = tmp_path / "areas.geojson"
        path.write_text("{}")

        assert fetcher.resolve(str(path)) == path

    def test_missing_path_raises(self, fetcher, tmp_path):
        """Missing local files raise LoadError."""
        with pytest.raises(LoadError, match="not found"):
            fetcher.resolve(str(tmp_path / "missing.csv"))


# ============================================================
# Remote Source Tests
# ============================================================

class TestRemoteSources:
    """Tests for downloads."""

    @respx.mock
    def test_download_keeps_file_suffix(self, fetcher):
        """Downloaded files keep their suffix so the format can be inferred."""
        respx.get(SOURCE_URL).mock(return_value=httpx.Response(200, content=b"species\nA\n"))

        path = fetcher.resolve(SOURCE_URL)

        assert path.suffix == ".csv"
        assert path.name.startswith("occurrences-")
        assert path.read_bytes() == b"species\nA\n"

    @respx.mock
    def test_repeated_download_does_not_overwrite(self, fetcher):
        """Fetching the same URL twice leaves the first file untouched."""
        respx.get(SOURCE_URL).mock(side_effect=[
            httpx.Response(200, content=b"first"),
            httpx.Response(200, content=b"second"),
        ])

        first = fetcher.resolve(SOURCE_URL)
        second = fetcher.resolve(SOURCE_URL)

        assert first != second
        assert first.read_bytes() == b"first"
        assert second.read_bytes() == b"second"

    @respx.mock
    def test_shared_basename_gets_separate_files(self, fetcher):
        """Different URLs ending in the same name do not collide."""
        respx.get("https://a.example.org/download").mock(return_value=httpx.Response(200, content=b"a"))
        respx.get("https://b.example.org/download").mock(return_value=httpx.Response(200, content=b"b"))

        path_a = fetcher.resolve("https://a.example.org/download")
        path_b = fetcher.resolve("https://b.example.org/download")

        assert path_a.read_bytes() == b"a"
        assert path_b.read_bytes() == b"b"

    @respx.mock
    def test_concurrent_downloads_share_one_directory(self, fetcher):
        """Parallel downloads land in one directory that close() removes."""
        respx.get(SOURCE_URL).mock(return_value=httpx.Response(200, content=b"x"))

        with ThreadPoolExecutor(max_workers=8) as pool:
            paths = list(pool.map(lambda _: fetcher.resolve(SOURCE_URL), range(16)))

        assert len(set(paths)) == 16
        assert len({path.parent for path in paths}) == 1
        assert all(path.read_bytes() == b"x" for path in paths)

        fetcher.close()

        assert not paths[0].parent.exists()

    @respx.mock
    def test_client_error_not_retried(self, fetcher):
        """4xx responses fail immediately."""
        route = respx.get(SOURCE_URL).mock(return_value=httpx.Response(404))

        with pytest.raises(LoadError, match="404"):
            fetcher.resolve(SOURCE_URL)

        assert route.call_count == 1

    @respx.mock
    def test_server_error_retried_then_fails(self, fetcher):
        """5xx responses are retried up to the configured attempts."""
        route = respx.get(SOURCE_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(LoadError, match="503"):
            fetcher.resolve(SOURCE_URL)

        assert route.call_count == settings.max_retry_attempts

    @respx.mock
    def test_server_error_recovers(self, fetcher):
        """A transient 5xx followed by success returns the file."""
        respx.get(SOURCE_URL).mock(side_effect=[
            httpx.Response(500),
            httpx.Response(200, content=b"ok"),
        ])

        path = fetcher.resolve(SOURCE_URL)

        assert path.read_bytes() == b"ok"

    @respx.mock
    def test_transport_error_raises_load_error(self, fetcher):
        """Connection failures end in LoadError after retries."""
        respx.get(SOURCE_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(LoadError, match="refused"):
            fetcher.resolve(SOURCE_URL)

    @respx.mock
    def test_close_removes_downloads(self):
        """Closing the fetcher deletes downloaded files."""
        respx.get(SOURCE_URL).mock(return_value=httpx.Response(200, content=b"x"))

        with SourceFetcher() as fetcher:
            path = fetcher.resolve(SOURCE_URL)
            assert path.exists()

        assert not path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
