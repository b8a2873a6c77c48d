from imgvault.domain.services.url_normalizer import is_cdn, normalize_url, urls_equal


def test_cdn_query_params_are_dropped():
    url = "https://scontent-lax3-1.xx.fbcdn.net/v/t39/photo.jpg?_nc_cat=1&oh=abc"
    assert normalize_url(url) == "https://scontent-lax3-1.xx.fbcdn.net/v/t39/photo.jpg"


def test_non_cdn_urls_are_untouched():
    url = "https://example.com/img.php?id=42"
    assert normalize_url(url) == url


def test_empty_and_relative_urls():
    assert normalize_url(None) == ""
    assert normalize_url("") == ""
    assert normalize_url("/relative/path.jpg") == "/relative/path.jpg"


def test_is_cdn():
    assert is_cdn("i.imgur.com")
    assert is_cdn("d111111abcdef8.cloudfront.net")
    assert not is_cdn("example.com")


def test_urls_equal():
    assert urls_equal("https://i.imgur.com/a.png?x=1", "https://i.imgur.com/a.png?x=2")
    assert not urls_equal("https://example.com/a.png?x=1", "https://example.com/a.png?x=2")
