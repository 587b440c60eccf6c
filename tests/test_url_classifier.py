from linkguard.core.config import DEFAULT_TOLERANT_DOMAINS
from linkguard.utils.url_classifier import PlatformClassifier, extract_video_id, is_http_url


classifier = PlatformClassifier(DEFAULT_TOLERANT_DOMAINS)


def test_classify_social_network_is_tolerant():
    assert classifier.classify("https://www.facebook.com/x") is True
    assert classifier.classify("https://app.bit.ly/abc") is True


def test_classify_regular_site_is_not_tolerant():
    assert classifier.classify("https://my-blog.example.org") is False


def test_classify_unparseable_input_is_not_tolerant():
    assert classifier.classify("not a url") is False
    assert classifier.classify("http://[::1") is False
    assert classifier.classify("") is False


def test_classify_uses_substring_match_for_regional_hosts():
    assert classifier.classify("https://www.amazon.com.br/dp/B000") is True
    assert classifier.classify("https://m.facebook.com/page") is True


def test_normalize_host_strips_repeated_prefixes():
    assert PlatformClassifier.normalize_host("https://WWW.app.Example.com/path") == "example.com"
    assert PlatformClassifier.normalize_host("no scheme") is None


def test_classifier_uses_injected_domain_list():
    custom = PlatformClassifier(["Example.com"])

    assert custom.classify("https://shop.example.com") is True
    assert custom.classify("https://www.facebook.com") is False


def test_extract_video_id_supports_common_url_shapes():
    assert extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://youtu.be/dQw4w9WgXcQ?t=10") == "dQw4w9WgXcQ"
    assert extract_video_id("https://www.youtube.com/embed/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://www.youtube.com/shorts/abcDEF12345") == "abcDEF12345"
    assert extract_video_id("https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert extract_video_id("https://example.com/page") is None


def test_is_http_url():
    assert is_http_url("https://example.com") is True
    assert is_http_url("ftp://example.com") is False
    assert is_http_url("example.com") is False
