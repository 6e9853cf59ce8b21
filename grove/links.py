"""Categorize external links attached to tasks."""

import re

from grove.constants import LinkCategory
from grove.models import Link

_URL_PATTERNS: list[tuple[re.Pattern[str], LinkCategory]] = [
    (re.compile(r"slack\.com", re.IGNORECASE), LinkCategory.SLACK),
    (re.compile(r"buildkite\.com", re.IGNORECASE), LinkCategory.BUILDKITE),
    (re.compile(r"github\.com", re.IGNORECASE), LinkCategory.GITHUB),
    (re.compile(r"atlassian\.net", re.IGNORECASE), LinkCategory.JIRA),
    (re.compile(r"jira\.", re.IGNORECASE), LinkCategory.JIRA),
    (re.compile(r"confluence", re.IGNORECASE), LinkCategory.CONFLUENCE),
    (re.compile(r"figma\.com", re.IGNORECASE), LinkCategory.FIGMA),
    (re.compile(r"notion\.so", re.IGNORECASE), LinkCategory.NOTION),
    (re.compile(r"docs\.google\.com", re.IGNORECASE), LinkCategory.GOOGLE_DOCS),
]

CATEGORY_DISPLAY_NAMES: dict[LinkCategory, str] = {
    LinkCategory.SLACK: "Slack",
    LinkCategory.BUILDKITE: "Buildkite",
    LinkCategory.GITHUB: "GitHub",
    LinkCategory.JIRA: "Jira",
    LinkCategory.CONFLUENCE: "Confluence",
    LinkCategory.FIGMA: "Figma",
    LinkCategory.NOTION: "Notion",
    LinkCategory.GOOGLE_DOCS: "Google Docs",
    LinkCategory.MISC: "Misc",
}


def categorize_url(url: str) -> LinkCategory:
    """First matching pattern wins; unknown hosts are MISC."""
    for pattern, category in _URL_PATTERNS:
        if pattern.search(url):
            return category
    return LinkCategory.MISC


def create_link(url: str, label: str = "") -> Link:
    return Link(url=url, label=label, category=categorize_url(url))


def group_links_by_category(links: list[Link]) -> dict[LinkCategory, list[Link]]:
    grouped: dict[LinkCategory, list[Link]] = {}
    for link in links:
        grouped.setdefault(link.category, []).append(link)
    return grouped
