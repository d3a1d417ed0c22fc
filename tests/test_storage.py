"""
Tests for onboarding file downloads.
"""

from unittest.mock import MagicMock

import pytest

from shopboost.core.errors import StorageError
from shopboost.db.storage import DEFAULT_BUCKET, IntakeFileStorage, decode_text


def make_client(content=None, error=None):
    bucket = MagicMock()
    if error is not None:
        bucket.download.side_effect = error
    else:
        bucket.download.return_value = content
    client = MagicMock()
    client.storage.from_.return_value = bucket
    return client, bucket


class TestDecodeText:
    """Tests for decode_text."""

    def test_strips_utf8_bom(self):
        assert decode_text("\ufeffName,Email".encode("utf-8")) == "Name,Email"

    def test_invalid_bytes_replaced(self):
        assert decode_text(b"caf\xe9") == "caf\ufffd"


class TestIntakeFileStorage:
    """Tests for IntakeFileStorage."""

    def test_default_bucket(self):
        client, _ = make_client(content=b"x")

        IntakeFileStorage(client).download("i/parts.csv")

        client.storage.from_.assert_called_once_with(DEFAULT_BUCKET)
        assert DEFAULT_BUCKET == "shop-imports"

    def test_download_text_decodes(self):
        client, bucket = make_client(content=b"Name\nJane\n")

        text = IntakeFileStorage(client, bucket="uploads").download_text("i/customers.csv")

        assert text == "Name\nJane\n"
        client.storage.from_.assert_called_once_with("uploads")
        bucket.download.assert_called_once_with("i/customers.csv")

    @pytest.mark.parametrize("path", [None, ""])
    def test_absent_path_is_none(self, path):
        client, bucket = make_client(content=b"x")

        assert IntakeFileStorage(client).download_text(path) is None
        bucket.download.assert_not_called()

    def test_failed_download_is_none(self):
        client, _ = make_client(error=RuntimeError("404 Object not found"))

        assert IntakeFileStorage(client).download_text("i/missing.csv") is None

    def test_download_raises_storage_error(self):
        client, _ = make_client(error=RuntimeError("404 Object not found"))

        with pytest.raises(StorageError, match="i/missing.csv"):
            IntakeFileStorage(client).download("i/missing.csv")

    def test_empty_file_is_none(self):
        client, _ = make_client(content=b"")

        assert IntakeFileStorage(client).download_text("i/empty.csv") is None

    @pytest.mark.asyncio
    async def test_fetch_text_runs_download(self):
        client, _ = make_client(content=b"a,b\n1,2\n")

        assert await IntakeFileStorage(client).fetch_text("i/parts.csv") == "a,b\n1,2\n"

    @pytest.mark.asyncio
    async def test_fetch_text_without_path(self):
        client, bucket = make_client(content=b"x")

        assert await IntakeFileStorage(client).fetch_text(None) is None
        bucket.download.assert_not_called()
