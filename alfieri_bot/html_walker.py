"""HTML structure walking for the newsletter email template."""

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from .config import SelectorConfig
from .errors import StructuralError
from .logging_config import create_execution_logger


class HtmlStructureWalker:
    """Extracts the newsletter link and per-title schedule text from an email body."""

    def __init__(
        self,
        body: str,
        selectors: SelectorConfig | None = None,
        execution_id: str | None = None,
    ):
        """Parse the HTML body.

        Args:
            body: Raw HTML document
            selectors: Template selectors, defaults to the current template
            execution_id: Execution ID for logging context
        """
        self.selectors = selectors or SelectorConfig()
        self.logger = create_execution_logger("html_walker", execution_id)
        self.dom = BeautifulSoup(body, "html.parser")

    def find_newsletter_link(self) -> str:
        """Return the ``href`` of the "view online" anchor.

        Raises:
            StructuralError: If the anchor or its href is missing
        """
        anchor = self.dom.select_one(self.selectors.link_selector)
        if anchor is None:
            raise StructuralError("Could not find newsletter link!")

        href = anchor.get("href")
        if not href:
            raise StructuralError("Newsletter link doesn't have `href` attribute!")

        return href

    def find_title_headings(self) -> list[Tag]:
        """Return all title headings in document order."""
        headings = self.dom.select(self.selectors.title_selector)
        self.logger.info(f"Got {len(headings)} title nodes", title_count=len(headings))
        return headings

    def heading_title(self, heading: Tag) -> str:
        text = heading.find(string=True)
        if text is None or not text.strip():
            raise StructuralError("Could not find text in selected title element")
        return text.strip()

    def schedule_box(self, heading: Tag, title: str) -> Tag:
        """Climb from a title heading to the container holding its schedule."""
        box = heading
        for _ in range(self.selectors.schedule_box_depth):
            box = box.parent if box is not None else None

        if box is None or box.name != self.selectors.schedule_box_tag:
            raise StructuralError(
                f"Invalid element for '{title}': could not find enclosing "
                f"{self.selectors.schedule_box_tag} box"
            )
        return box

    def flatten_schedule_box(self, box: Tag) -> str:
        """Flatten a schedule box into text, turning ``<br>`` into newlines.

        Text nodes are kept verbatim and all other element boundaries are
        dropped; fragments are joined with a single space.
        """
        fragments = []
        for node in box.descendants:
            if isinstance(node, NavigableString):
                if not isinstance(node, PreformattedString):
                    fragments.append(str(node))
            elif isinstance(node, Tag) and node.name == "br":
                fragments.append("\n")

        return " ".join(fragments)

    def walk(self) -> tuple[list[tuple[str, str]], str]:
        """Extract ``(title, schedule_text)`` pairs and the newsletter link.

        Raises:
            StructuralError: On the first template mismatch
        """
        link = self.find_newsletter_link()

        headings = self.find_title_headings()
        if not headings:
            raise StructuralError("Could not find any title heading")

        pairs = []
        for heading in headings:
            title = self.heading_title(heading)
            box = self.schedule_box(heading, title)
            pairs.append((title, self.flatten_schedule_box(box)))

        return pairs, link
