from dataclasses import replace
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from imgvault.infrastructure.api.dependencies import get_imgbb_host, get_pixvid_host
from imgvault.infrastructure.hosts.base import LOCAL_TOKEN_PREFIX, HostError
from imgvault.infrastructure.hosts.imgbb_host import IMGBB_DELETE_URL, ImgbbHost, parse_delete_url
from imgvault.infrastructure.hosts.pixvid_host import PIXVID_UPLOAD_URL, PixvidHost, upload_filename


@pytest.fixture()
def remote_settings(settings):
    return replace(settings, hosts_disabled=False, pixvid_api_key="pv-key", imgbb_api_key="bb-key")


def _response(status=200, body=None):
    res = Mock(ok=200 <= status < 300, status_code=status, text="")
    res.json.return_value = body or {}
    return res


def test_local_mode_upload_and_delete(settings):
    host = PixvidHost(settings)
    result = host.upload(b"bytes", "photo.png")

    assert result.delete_token.startswith(LOCAL_TOKEN_PREFIX)
    path = Path(result.delete_token[len(LOCAL_TOKEN_PREFIX):])
    assert path.read_bytes() == b"bytes"
    assert path.suffix == ".png"

    host.delete(result.delete_token)
    assert not path.exists()
    with pytest.raises(HostError):
        host.delete(result.delete_token)


def test_configured_flags(settings, remote_settings):
    assert ImgbbHost(settings).configured
    assert not ImgbbHost(replace(remote_settings, imgbb_api_key="")).configured
    assert ImgbbHost(remote_settings).configured


def test_missing_key_raises(remote_settings):
    host = PixvidHost(replace(remote_settings, pixvid_api_key=""))
    with pytest.raises(HostError, match="API key"):
        host.upload(b"x", "a.jpg")


def test_pixvid_upload_parses_chevereto_response(remote_settings):
    session = Mock()
    session.post.return_value = _response(body={
        "status_code": 200,
        "image": {"url": "https://pixvid.org/i/a.jpg", "delete_url": "https://pixvid.org/delete/a/xyz"},
    })
    result = PixvidHost(remote_settings, session=session).upload(b"data", "https://x.com/p/a.jpg?w=1")

    assert result.url == "https://pixvid.org/i/a.jpg"
    assert result.delete_token == "https://pixvid.org/delete/a/xyz"
    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert url == PIXVID_UPLOAD_URL
    assert kwargs["data"] == {"key": "pv-key"}
    assert kwargs["files"]["source"] == ("a.jpg", b"data")


def test_pixvid_error_body_raises(remote_settings):
    session = Mock()
    session.post.return_value = _response(body={"status_code": 400, "error": {"message": "Duplicated upload"}})
    with pytest.raises(HostError, match="Duplicated upload"):
        PixvidHost(remote_settings, session=session).upload(b"data", "a.jpg")


def test_network_errors_are_wrapped(remote_settings):
    session = Mock()
    session.post.side_effect = requests.ConnectionError("refused")
    with pytest.raises(HostError, match="request failed"):
        PixvidHost(remote_settings, session=session).upload(b"data", "a.jpg")


def test_imgbb_upload_returns_thumb(remote_settings):
    session = Mock()
    session.post.return_value = _response(body={
        "success": True,
        "data": {
            "url": "https://i.ibb.co/abc/a.jpg",
            "delete_url": "https://ibb.co/abc/def123",
            "thumb": {"url": "https://i.ibb.co/abc/t.jpg"},
        },
    })
    result = ImgbbHost(remote_settings, session=session).upload(b"\x01\x02", "a.jpg")

    assert result.thumb_url == "https://i.ibb.co/abc/t.jpg"
    assert result.delete_token == "https://ibb.co/abc/def123"
    kwargs = session.post.call_args.kwargs
    assert kwargs["params"] == {"key": "bb-key"}
    assert kwargs["data"] == {"image": "AQI="}


def test_imgbb_delete_posts_id_and_hash(remote_settings):
    session = Mock()
    session.post.return_value = _response()
    ImgbbHost(remote_settings, session=session).delete("https://ibb.co/abc/def123")

    assert session.post.call_args.args[0] == IMGBB_DELETE_URL
    data = session.post.call_args.kwargs["data"]
    assert data["deleting[id]"] == "abc"
    assert data["deleting[hash]"] == "def123"


def test_imgbb_delete_failure_raises(remote_settings):
    session = Mock()
    session.post.return_value = _response(status=500)
    with pytest.raises(HostError):
        ImgbbHost(remote_settings, session=session).delete("https://ibb.co/abc/def123")


def test_pixvid_delete_follows_delete_url(remote_settings):
    session = Mock()
    session.get.return_value = _response()
    PixvidHost(remote_settings, session=session).delete("https://pixvid.org/delete/a/xyz")
    assert session.get.call_args.args[0] == "https://pixvid.org/delete/a/xyz"


def test_parse_delete_url():
    assert parse_delete_url("https://ibb.co/abc/def") == ("abc", "def")
    with pytest.raises(HostError):
        parse_delete_url("https://ibb.co/abc")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("https://a.com/x/cat.png?size=large", "cat.png"),
        ("photo.jpg", "photo.jpg"),
        ("data:image/png;base64,AAAA", "image.jpg"),
        ("https://a.com/", "image.jpg"),
        (None, "image.jpg"),
    ],
)
def test_upload_filename(value, expected):
    assert upload_filename(value) == expected


@pytest.mark.parametrize("provider", [get_pixvid_host, get_imgbb_host])
def test_request_scoped_hosts_close_their_session(settings, provider):
    deps = provider(settings)
    host = next(deps)
    host.session = Mock()
    with pytest.raises(StopIteration):
        next(deps)
    host.session.close.assert_called_once()
