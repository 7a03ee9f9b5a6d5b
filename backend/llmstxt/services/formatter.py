"""Page categorization and llms.txt rendering."""

from urllib.parse import urlparse

from llmstxt.schemas import PageRecord

# Evaluated in order; the first matching rule wins.
CATEGORY_RULES: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = [
    ("docs", ("/docs/", "/documentation/"), ("documentation", "manual", "reference")),
    ("examples", ("/examples/", "/sample/"), ("example", "sample", "demo")),
    ("tutorial", ("/tutorial/", "/learn/"), ("tutorial", "learn", "how to")),
]
DEFAULT_CATEGORY = "other"

SECTION_TITLES = {
    "docs": "Docs",
    "examples": "Examples",
    "tutorial": "Tutorials",
}


def categorize_page(url: str, title: str) -> str:
    """Assign exactly one category from the URL path and title."""
    path = urlparse(url).path.lower().rstrip("/") + "/"
    title = title.lower()
    for category, path_markers, title_markers in CATEGORY_RULES:
        if any(marker in path for marker in path_markers):
            return category
        if any(marker in title for marker in title_markers):
            return category
    return DEFAULT_CATEGORY


def single_line(text: str) -> str:
    """Collapse newlines and runs of whitespace so text stays on one line."""
    return " ".join(text.split())


def format_page_line(page: PageRecord) -> str:
    description = single_line(page.description)
    desc = f": {description}" if description else ""
    return f"- [{single_line(page.title)}]({page.url}){desc}"


def format_llms_txt(site_title: str, site_description: str, pages: list[PageRecord]) -> str:
    """Render the llms.txt document.

    Pages are grouped into Docs, Examples and Tutorials sections (in that
    order) plus "Other Resources". When at most one category is populated the
    grouping carries no information and a single flat "Pages" list is
    rendered instead, in the original page order.
    """
    by_category: dict[str, list[PageRecord]] = {}
    for page in pages:
        page.category = categorize_page(page.url, page.title)
        by_category.setdefault(page.category, []).append(page)

    lines = [f"# {single_line(site_title)}", ""]

    # Description (blockquote)
    site_description = single_line(site_description)
    if site_description:
        lines.append(f"> {site_description}")
        lines.append("")

    if len(by_category) > 1:
        sections = [
            (SECTION_TITLES[category], by_category[category])
            for category in SECTION_TITLES
            if by_category.get(category)
        ]
        if by_category.get(DEFAULT_CATEGORY):
            sections.append(("Other Resources", by_category[DEFAULT_CATEGORY]))
    elif pages:
        sections = [("Pages", pages)]
    else:
        sections = []

    for name, section_pages in sections:
        lines.append(f"## {name}")
        lines.append("")
        lines.extend(format_page_line(page) for page in section_pages)
        lines.append("")

    return "\n".join(lines)
