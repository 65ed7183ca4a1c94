"""Unit tests for the entry fetcher."""

import json

import pytest
from conftest import FakeSession, build_metadata

from docs_sync.core.exceptions import FetchError, MalformedReferenceError, RecordValidationError
from docs_sync.core.http import GITHUB_JSON_ACCEPT, GitHubClient
from docs_sync.models.documents import DiscoveredRef, validate_record
from docs_sync.pipelines.loader.fetcher import EntryFetcher, parse_url


def ref_for(metadata):
    return DiscoveredRef(metadata_url=metadata["url"], content_url=metadata["download_url"])


def fetcher_for(session, **kwargs):
    return EntryFetcher(GitHubClient(session, max_retries=0), **kwargs)


class TestParseUrl:
    """Test entry URL parsing."""

    def test_valid_urls(self):
        assert parse_url("https://api.github.com/x") == "https://api.github.com/x"
        assert parse_url("http://localhost:8080/x.md") == "http://localhost:8080/x.md"

    @pytest.mark.parametrize(
        "value",
        ["", "not a url", "/relative/path.md", "ftp://host/x.md", "https://", None, 42],
    )
    def test_invalid_urls(self, value):
        with pytest.raises(MalformedReferenceError):
            parse_url(value)


class TestEntryFetcher:
    """Test fetching a single entry."""

    @pytest.mark.asyncio
    async def test_fetch_merges_metadata_and_rewritten_content(self):
        metadata = build_metadata("api.md")
        text = "# API\n\nSee [FAQ](./faq.md#gpu) and [site](https://ollama.com).\n"
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (200, text),
            }
        )

        record = await fetcher_for(session).fetch(ref_for(metadata))

        assert record.url == metadata["url"]
        assert record.sha == metadata["sha"]
        assert record.encoding == "base64"
        assert record.content == (
            "# API\n\nSee [FAQ](/docs/faq.md#gpu) and [site](https://ollama.com).\n"
        )
        assert session.calls == [
            (metadata["url"], {"Accept": GITHUB_JSON_ACCEPT}),
            (metadata["download_url"], None),
        ]

    @pytest.mark.asyncio
    async def test_custom_route_prefix(self):
        metadata = build_metadata("api.md")
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (200, "[x](./x.md)"),
            }
        )

        record = await fetcher_for(session, route_prefix="/guides/").fetch(ref_for(metadata))

        assert record.content == "[x](/guides/x.md)"

    @pytest.mark.asyncio
    async def test_malformed_reference_dropped_without_requests(self):
        session = FakeSession({})
        ref = DiscoveredRef(metadata_url="not a url", content_url="https://raw/x.md")

        assert await fetcher_for(session).fetch(ref) is None
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_malformed_content_url_dropped(self):
        session = FakeSession({})
        ref = DiscoveredRef(metadata_url="https://api.github.com/x", content_url="x.md")

        assert await fetcher_for(session).fetch(ref) is None

    @pytest.mark.asyncio
    async def test_metadata_error_status(self):
        metadata = build_metadata()
        session = FakeSession({metadata["url"]: (500, "boom")})

        with pytest.raises(FetchError) as exc_info:
            await fetcher_for(session).fetch(ref_for(metadata))

        assert exc_info.value.url == metadata["url"]
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_content_not_utf8(self):
        metadata = build_metadata()
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (200, b"# Intro \xff\xfe"),
            }
        )

        with pytest.raises(FetchError) as exc_info:
            await fetcher_for(session).fetch(ref_for(metadata))

        assert exc_info.value.url == metadata["download_url"]
        assert exc_info.value.reason == "body is not valid UTF-8"

    @pytest.mark.asyncio
    async def test_metadata_not_utf8(self):
        metadata = build_metadata()
        session = FakeSession({metadata["url"]: (200, b'{"name": "\xff"}')})

        with pytest.raises(FetchError) as exc_info:
            await fetcher_for(session).fetch(ref_for(metadata))

        assert exc_info.value.reason == "body is not valid UTF-8"

    @pytest.mark.asyncio
    async def test_metadata_not_an_object(self):
        metadata = build_metadata()
        session = FakeSession({metadata["url"]: (200, "[]")})

        with pytest.raises(FetchError):
            await fetcher_for(session).fetch(ref_for(metadata))

    @pytest.mark.asyncio
    async def test_content_error_status(self):
        metadata = build_metadata()
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (404, "404: Not Found"),
            }
        )

        with pytest.raises(FetchError) as exc_info:
            await fetcher_for(session).fetch(ref_for(metadata))

        assert exc_info.value.url == metadata["download_url"]

    @pytest.mark.asyncio
    async def test_empty_content_is_an_error(self):
        metadata = build_metadata()
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (200, ""),
            }
        )

        with pytest.raises(FetchError) as exc_info:
            await fetcher_for(session).fetch(ref_for(metadata))

        assert "empty" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_metadata_fails_validation(self):
        metadata = build_metadata(size="large")
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (200, "# Doc"),
            }
        )

        with pytest.raises(RecordValidationError):
            await fetcher_for(session).fetch(ref_for(metadata))

    @pytest.mark.asyncio
    async def test_cached_record_with_same_sha_skips_download(self):
        metadata = build_metadata()
        cached = validate_record({**metadata, "content": "cached body"})
        session = FakeSession({metadata["url"]: (200, json.dumps(metadata))})

        record = await fetcher_for(session).fetch(ref_for(metadata), cached)

        assert record.content == "cached body"
        assert session.urls() == [metadata["url"]]

    @pytest.mark.asyncio
    async def test_cached_record_with_different_sha_refetches(self):
        metadata = build_metadata()
        cached = validate_record({**metadata, "sha": "old", "content": "cached body"})
        session = FakeSession(
            {
                metadata["url"]: (200, json.dumps(metadata)),
                metadata["download_url"]: (200, "fresh body"),
            }
        )

        record = await fetcher_for(session).fetch(ref_for(metadata), cached)

        assert record.content == "fresh body"
