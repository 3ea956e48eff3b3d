"""
Content Extractor

Turns a DomSnapshot into:
- a flattened text corpus (the only input to report generation)
- a StructuredData record (title, description, content, links, images,
  navigation, headings, social/contact/copyright metadata)

Every rule is independent and degrades to an empty string/list when nothing
matches; nothing here raises on a sparse page.
"""

import logging
import re
from dataclasses import dataclass
from typing import List
from urllib.parse import unquote

from .dom import DomSnapshot, is_http_url, text_of
from .models import (
    ContactInfo,
    Heading,
    ImageInfo,
    NavigationItem,
    PageMetadata,
    StructuredData,
)

logger = logging.getLogger(__name__)

# Text inside these elements is never part of the corpus
NON_VISIBLE_PARENTS = {"script", "style"}

CONTENT_CONTAINERS = ("article", "main", "#content", ".content", "[role=main]")
CONTENT_TAGS = ("p", "h1", "h2", "h3", "h4", "h5", "h6")
HEADING_SELECTOR = "h1, h2, h3, h4, h5, h6"
NAVIGATION_SELECTOR = "nav a, header a, .navigation a, .menu a"
ADDRESS_SELECTOR = 'address, .address, [itemprop="address"]'

SOCIAL_PATTERNS = [
    re.compile(pattern, re.I) for pattern in (
        r'facebook\.com',
        r'twitter\.com',
        r'(?:^|[/.])x\.com',
        r'linkedin\.com',
        r'youtube\.com',
        r'instagram\.com',
        r'tiktok\.com',
        r'github\.com',
        r'pinterest\.com',
    )
]


@dataclass
class ExtractionResult:
    text: str
    data: StructuredData


def extract(snapshot: DomSnapshot) -> ExtractionResult:
    """Run text and structured extraction over one snapshot."""
    return ExtractionResult(text=extract_text(snapshot), data=extract_structured(snapshot))


# ============================================================================
# TEXT CORPUS
# ============================================================================

def extract_text(snapshot: DomSnapshot) -> str:
    """
    Flatten all visible text nodes into one newline-joined corpus.

    Nodes are visited depth-first in document order; nodes whose parent is a
    script or style element are skipped, as are nodes that are empty after
    trimming.
    """
    texts = []
    for node in snapshot.text_nodes():
        parent = node.parent
        if parent is not None and parent.name in NON_VISIBLE_PARENTS:
            continue
        text = node.strip()
        if text:
            texts.append(text)
    return '\n'.join(texts)


# ============================================================================
# STRUCTURED DATA
# ============================================================================

def extract_structured(snapshot: DomSnapshot) -> StructuredData:
    """Apply every extraction rule in one pass over the snapshot."""
    data = StructuredData(
        title=snapshot.title,
        description=snapshot.meta_content('description'),
        main_content=get_main_content(snapshot),
        links=get_links(snapshot),
        images=get_images(snapshot),
        navigation=get_navigation(snapshot),
        headings=get_headings(snapshot),
        metadata=PageMetadata(
            social_links=get_social_links(snapshot),
            contact_info=get_contact_info(snapshot),
            copyright=get_copyright(snapshot)
        )
    )
    logger.debug(
        f"Extracted {len(data.main_content)} content blocks, {len(data.links)} links, "
        f"{len(data.images)} images, {len(data.headings)} headings"
    )
    return data


def get_main_content(snapshot: DomSnapshot) -> List[str]:
    """Paragraph and heading text, scoped to content containers when the page has any."""
    has_container = any(snapshot.select_one(container) for container in CONTENT_CONTAINERS)
    if has_container:
        selector = ", ".join(
            f"{container} {tag}" for container in CONTENT_CONTAINERS for tag in CONTENT_TAGS
        )
    else:
        selector = ", ".join(CONTENT_TAGS)

    content = []
    for element in snapshot.select(selector):
        text = text_of(element)
        if text:
            content.append(text)
    return content


def get_links(snapshot: DomSnapshot) -> List[str]:
    """Resolved anchor hrefs, absolute HTTP(S) only; in-page fragments resolve against the page."""
    links = []
    for anchor in snapshot.select('a[href]'):
        href = snapshot.resolve(anchor.get('href'))
        if href and is_http_url(href):
            links.append(href)
    return links


def get_images(snapshot: DomSnapshot) -> List[ImageInfo]:
    images = []
    for img in snapshot.select('img'):
        src = snapshot.resolve(img.get('src'))
        if not src:
            continue
        images.append(ImageInfo(
            src=src,
            alt=img.get('alt'),
            title=img.get('title')
        ))
    return images


def get_navigation(snapshot: DomSnapshot) -> List[NavigationItem]:
    """Flat text/url pairs for anchors inside navigation containers."""
    return [
        NavigationItem(text=text_of(anchor), url=(anchor.get('href') or '').strip())
        for anchor in snapshot.select(NAVIGATION_SELECTOR)
    ]


def get_headings(snapshot: DomSnapshot) -> List[Heading]:
    return [
        Heading(level=int(heading.name[1]), text=text_of(heading))
        for heading in snapshot.select(HEADING_SELECTOR)
    ]


def get_social_links(snapshot: DomSnapshot) -> List[str]:
    social = []
    for anchor in snapshot.select('a[href]'):
        href = snapshot.resolve(anchor.get('href'))
        if href and any(pattern.search(href) for pattern in SOCIAL_PATTERNS):
            social.append(href)
    return social


def get_contact_info(snapshot: DomSnapshot) -> ContactInfo:
    phones = []
    for anchor in snapshot.select('a[href]'):
        href = anchor['href'].strip()
        if href.lower().startswith('tel:'):
            phones.append(unquote(href[4:]).strip())

    emails = []
    for anchor in snapshot.select('a[href]'):
        href = anchor['href'].strip()
        if href.lower().startswith('mailto:'):
            emails.append(unquote(href[7:].split('?', 1)[0]).strip())

    addresses = [text_of(element) for element in snapshot.select(ADDRESS_SELECTOR)]

    return ContactInfo(
        phones=_unique(phones),
        emails=_unique(emails),
        addresses=_unique(addresses)
    )


def get_copyright(snapshot: DomSnapshot) -> str:
    element = snapshot.select_one('.copyright') or snapshot.select_one('[class*="copyright"]')
    return text_of(element) if element else ""


def _unique(values: List[str]) -> List[str]:
    """Drop empties and duplicates, keeping first-seen order."""
    seen = set()
    unique = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            unique.append(value)
    return unique
