"""CSRF token lookup from the hosting page's <meta name="csrf-token"> tag."""

from html.parser import HTMLParser


class _CsrfMetaParser(HTMLParser):
    def __init__(self):
        super().__init__()
        self.token: str | None = None

    def handle_starttag(self, tag, attrs):
        if tag != "meta" or self.token is not None:
            return
        attributes = dict(attrs)
        if attributes.get("name") == "csrf-token":
            self.token = attributes.get("content") or None


def read_csrf_token(html: str | None) -> str | None:
    """Return the csrf-token meta content, or None when the page has none."""
    if not html:
        return None
    parser = _CsrfMetaParser()
    parser.feed(html)
    parser.close()
    return parser.token
