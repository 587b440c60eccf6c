from linkguard.utils.link_extractor import extract_links


def test_extract_links_strips_sentence_punctuation():
    links = extract_links("see http://a.com/b, http://c.com/d.")

    assert list(links) == ["http://a.com/b", "http://c.com/d"]


def test_extract_links_strips_trailing_punctuation_greedily():
    links = list(extract_links("(check https://example.com/page?!).) now"))

    assert links == ["https://example.com/page"]


def test_extract_links_preserves_order_and_duplicates():
    text = "https://b.com first, then https://a.com and again https://b.com"

    assert list(extract_links(text)) == ["https://b.com", "https://a.com", "https://b.com"]


def test_extract_links_is_restartable():
    links = extract_links("one http://x.io two https://y.io")

    assert list(links) == list(links) == ["http://x.io", "https://y.io"]


def test_extract_links_handles_empty_or_missing_text():
    assert list(extract_links("")) == []
    assert list(extract_links(None)) == []
    assert list(extract_links("no links here, www.example.com is not matched")) == []


def test_extract_links_keeps_query_strings_and_fragments():
    text = "Shop: https://amzn.to/3xYz?tag=abc-21#top\nBlog: http://blog.example.org/post"

    assert list(extract_links(text)) == [
        "https://amzn.to/3xYz?tag=abc-21#top",
        "http://blog.example.org/post",
    ]
