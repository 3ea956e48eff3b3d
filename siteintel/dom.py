"""
DOM snapshot over a rendered page.

The rendered HTML is parsed with BeautifulSoup (lxml) into a queryable tree so
every extraction rule is a pure function of the snapshot and can be tested
against synthetic HTML without a browser.
"""

from typing import Iterator, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.element import CData, Declaration, Doctype, ProcessingInstruction

from .renderer import RenderedPage

# NavigableString subclasses that are not visible text nodes
_NON_TEXT_NODES = (Comment, CData, Declaration, Doctype, ProcessingInstruction)


class DomSnapshot:
    """Read-only view of a page's DOM at one point in time."""

    def __init__(self, html: str, url: str = ""):
        self.html = html or ""
        self.url = url or ""
        self.soup = BeautifulSoup(self.html, 'lxml')
        self.base_url = self._resolve_base_url()

    @classmethod
    def from_rendered(cls, page: RenderedPage) -> "DomSnapshot":
        return cls(page.html, page.final_url or page.requested_url)

    def _resolve_base_url(self) -> str:
        base = self.soup.find('base', href=True)
        if base and base['href'].strip():
            return urljoin(self.url, base['href'].strip())
        return self.url

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)

    @property
    def root(self) -> Tag:
        """<body> if present, else the whole document."""
        return self.soup.body or self.soup

    @property
    def title(self) -> str:
        tag = self.soup.title
        return tag.get_text().strip() if tag else ""

    def meta_content(self, name: str) -> str:
        name = name.lower()
        for meta in self.soup.find_all('meta'):
            if (meta.get('name') or '').strip().lower() == name:
                return (meta.get('content') or '').strip()
        return ""

    def text_nodes(self) -> Iterator[NavigableString]:
        """All text nodes under the root, in document order."""
        for node in self.root.descendants:
            if isinstance(node, NavigableString) and not isinstance(node, _NON_TEXT_NODES):
                yield node

    # ------------------------------------------------------------------
    # URL helpers
    # ------------------------------------------------------------------

    def resolve(self, href: Optional[str]) -> str:
        """Resolve an attribute URL the way the browser's a.href / img.src does."""
        if href is None:
            return ""
        href = href.strip()
        if not href:
            return ""
        if not self.base_url:
            return href
        return urljoin(self.base_url, href)


def text_of(tag: Tag) -> str:
    return tag.get_text().strip()


def is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
