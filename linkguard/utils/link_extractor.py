"""linkguard.utils.link_extractor
영상 설명란 텍스트에서 URL 후보 추출
"""
import re
from typing import Iterable, Iterator

URL_PATTERN = re.compile(r'https?://\S+')

# 문장 부호로 붙은 꼬리 문자 (URL 일부가 아님)
TRAILING_PUNCTUATION = ".,;!?)"


class LinkExtraction(Iterable[str]):
    """
    텍스트의 URL 후보를 등장 순서대로 돌려주는 지연 시퀀스

    순회할 때마다 처음부터 다시 매칭하므로 여러 번 순회할 수 있습니다.
    중복 URL은 그대로 유지됩니다.
    """

    def __init__(self, text: str | None):
        self.text = text or ""

    def __iter__(self) -> Iterator[str]:
        for match in URL_PATTERN.finditer(self.text):
            url = match.group(0).rstrip(TRAILING_PUNCTUATION)
            if url:
                yield url


def extract_links(text: str | None) -> LinkExtraction:
    """
    텍스트에서 http(s) URL 후보 추출

    URL 문법 검증은 하지 않습니다 (검증은 링크 검사 단계에서 수행).

    Args:
        text: 영상 설명 등 임의 텍스트

    Returns:
        LinkExtraction: 재순회 가능한 URL 시퀀스

    Examples:
        >>> list(extract_links("see http://a.com/b, http://c.com/d."))
        ['http://a.com/b', 'http://c.com/d']
    """
    return LinkExtraction(text)
