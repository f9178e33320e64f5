#!/usr/bin/env python3
"""
Minimal selector engine over chart page markup.

Supports a deliberately small selector grammar on top of BeautifulSoup:

    .foo                  class attribute contains "foo"
    .foo.bar              class attribute contains "foo" and "bar"
    tag / tag.foo         tag name, optionally with class-contains
    tag[attr]             tag carrying attr
    tag[attr="value"]     tag whose attr value contains "value"
    .info .title          descendant chain, evaluated by scoped sub-querying

Queries never raise: an unparseable selector or missing match gives an
empty list or None.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

SIMPLE_SELECTOR_RE = re.compile(
    r'^(?P<tag>[a-zA-Z][a-zA-Z0-9-]*)?'
    r'(?P<classes>(?:\.[^\s.\[\]]+)*)'
    r'(?:\[(?P<attr>[^\]=\s]+)(?:=(?P<quote>["\']?)(?P<value>[^"\'\]]*)(?P=quote))?\])?$'
)


@dataclass(frozen=True)
class SimpleSelector:
    """One step of a selector chain."""
    tag: Optional[str] = None
    classes: Tuple[str, ...] = ()
    attr: Optional[str] = None
    value: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> Optional['SimpleSelector']:
        match = SIMPLE_SELECTOR_RE.match(text)
        if not match or not any(match.group(name) for name in ('tag', 'classes', 'attr')):
            return None

        classes = tuple(token for token in match.group('classes').split('.') if token)
        return cls(
            tag=match.group('tag').lower() if match.group('tag') else None,
            classes=classes,
            attr=match.group('attr'),
            value=match.group('value') or None
        )

    def matches(self, element: Tag) -> bool:
        if self.tag and element.name != self.tag:
            return False

        if self.classes:
            class_value = _attribute_text(element, 'class') or ''
            if not all(token in class_value for token in self.classes):
                return False

        if self.attr:
            attr_value = _attribute_text(element, self.attr)
            if attr_value is None:
                return False
            if self.value and self.value not in attr_value:
                return False

        return True


def _attribute_text(element: Tag, name: str) -> Optional[str]:
    """Attribute value as a string; BeautifulSoup splits multi-valued ones."""
    value = element.get(name)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ' '.join(value)
    return str(value)


def _parse_selector(selector: str) -> Optional[List[SimpleSelector]]:
    steps = []
    for part in (selector or '').split():
        step = SimpleSelector.parse(part)
        if step is None:
            logger.debug(f"Unsupported selector '{selector}'")
            return None
        steps.append(step)
    return steps or None


def _select(root: Tag, selector: str) -> List['HtmlElement']:
    steps = _parse_selector(selector)
    if not steps:
        return []

    scopes = [root]
    for step in steps:
        found = []
        seen = set()
        for scope in scopes:
            for element in scope.find_all(step.matches):
                if id(element) not in seen:
                    seen.add(id(element))
                    found.append(element)
        scopes = found
        if not scopes:
            break

    return [HtmlElement(element) for element in scopes]


class HtmlElement:
    """A matched element supporting text extraction and scoped sub-queries."""

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def name(self) -> str:
        return self._tag.name

    @property
    def text(self) -> str:
        """Tag-stripped, trimmed inner content."""
        return self._tag.get_text().strip()

    def get_attribute(self, name: str) -> Optional[str]:
        """Attribute value on this element's opening tag, or None."""
        return _attribute_text(self._tag, name)

    def select_all(self, selector: str) -> List['HtmlElement']:
        """Matches among this element's descendants, in document order."""
        return _select(self._tag, selector)

    def select_one(self, selector: str) -> Optional['HtmlElement']:
        matches = self.select_all(selector)
        return matches[0] if matches else None

    def __repr__(self):
        return f"HtmlElement(<{self._tag.name}>, text='{self.text[:30]}')"


class HtmlParser:
    """Selector queries over a raw markup string."""

    def __init__(self, markup: str):
        """
        Parse markup.

        Args:
            markup: Raw HTML document or fragment
        """
        try:
            self._soup = BeautifulSoup(markup or '', 'html.parser')
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to parse markup, treating as empty: {e}")
            self._soup = BeautifulSoup('', 'html.parser')

    def select_all(self, selector: str) -> List[HtmlElement]:
        """All elements matching selector, in document order."""
        return _select(self._soup, selector)

    def select_one(self, selector: str) -> Optional[HtmlElement]:
        """First element matching selector, or None."""
        matches = self.select_all(selector)
        return matches[0] if matches else None
