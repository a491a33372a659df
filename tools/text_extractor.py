"""
Text Extractor Tool — turns the static HTML content blocks into plain text.
Uses BeautifulSoup; consumers that cannot render markup (the CLI) read this.
"""

import re
from bs4 import BeautifulSoup


def html_to_text(html: str, max_length: int = None) -> str:
    """
    Extract readable text from an HTML fragment.
    List items are rendered as bullet lines.

    Args:
        html: HTML string (e.g. the about-page block).
        max_length: Optional maximum character length.

    Returns:
        Plain text with blank lines between blocks.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for element in soup.find_all(["script", "style"]):
        element.decompose()

    for item in soup.find_all("li"):
        item.insert(0, "• ")

    text = soup.get_text(separator="\n", strip=True)

    # "• " and the item text end up on separate lines; join them back
    text = re.sub(r"•\s*\n", "• ", text)

    # Keep inline emphasis on the same line as the text around it
    text = re.sub(r":\n", ": ", text)

    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r" {2,}", " ", text)

    if max_length and len(text) > max_length:
        text = text[:max_length] + "…"

    return text
