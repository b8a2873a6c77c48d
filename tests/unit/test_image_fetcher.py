from unittest.mock import MagicMock, Mock

import pytest
import requests

from imgvault.domain.errors import ImageFetchError
from imgvault.infrastructure.web import image_fetcher
from imgvault.infrastructure.web.image_fetcher import fetch_image


def _session(chunks, content_type="image/png"):
    res = MagicMock()
    res.__enter__.return_value = res
    res.headers = {"Content-Type": content_type}
    res.iter_content.return_value = iter(chunks)
    session = Mock()
    session.get.return_value = res
    return session, res


def test_fetch_streams_and_reads_content_type():
    session, res = _session([b"abc", b"def"], "image/png; charset=binary")
    fetched = fetch_image("https://cdn.example/a.png", session=session)
    assert fetched.data == b"abcdef"
    assert fetched.content_type == "image/png"
    assert session.get.call_args.kwargs["stream"] is True
    res.__exit__.assert_called_once()


def test_oversized_download_aborts_and_closes_the_response(monkeypatch):
    monkeypatch.setattr(image_fetcher, "MAX_IMAGE_BYTES", 4)
    session, res = _session([b"abc", b"def", b"ghi"])
    with pytest.raises(ImageFetchError, match="larger than"):
        fetch_image("https://cdn.example/big.png", session=session)
    res.__exit__.assert_called_once()


def test_http_errors_become_fetch_errors():
    session, res = _session([])
    res.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
    with pytest.raises(ImageFetchError, match="404"):
        fetch_image("https://cdn.example/missing.png", session=session)
    res.__exit__.assert_called_once()


def test_data_url_and_unsupported_scheme():
    fetched = fetch_image("data:image/gif;base64,R0lG")
    assert fetched.data == b"GIF"
    assert fetched.content_type == "image/gif"
    with pytest.raises(ImageFetchError):
        fetch_image("ftp://example.com/a.png")
