"""
HTML clean-up helpers used before content goes to an LLM.
"""

import logging
import re

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

REMOVED_TAGS = ["script", "style", "meta", "svg", "iframe", "noscript", "head"]

STRIPPED_ATTRIBUTES = {
    "style", "class", "id", "onclick", "role", "tabindex", "target", "rel",
    "srcset", "sizes", "loading", "crossorigin", "integrity",
}

STRUCTURAL_TAGS = {
    "html", "body", "div", "span", "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "table", "tr", "td", "th", "img", "br", "hr",
}


def simplify_html(html: str) -> str:
    """
    Reduce an HTML document to its content skeleton to save tokens.

    Scripts, styles, presentational attributes and comments are removed, as
    are empty non-structural elements. The original HTML is returned if
    parsing fails.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")

        for tag in soup(REMOVED_TAGS):
            tag.decompose()
        for link in soup.select('link[rel="stylesheet"]'):
            link.decompose()

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        for element in soup.find_all(True):
            for attr in list(element.attrs):
                if (
                    attr in STRIPPED_ATTRIBUTES
                    or attr.startswith("data-")
                    or attr.startswith("aria-")
                ):
                    del element.attrs[attr]

        # Deepest first so parents emptied by the pass are caught too
        for element in reversed(soup.find_all(True)):
            if element.name in STRUCTURAL_TAGS:
                continue
            if not element.find(True) and not element.get_text(strip=True):
                element.decompose()

        return str(soup)
    except Exception as e:
        logger.warning(f"⚠️  Failed to simplify HTML, returning original: {str(e)}")
        return html


def html_to_text(html: str) -> str:
    """Visible text of a document, whitespace collapsed"""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()
