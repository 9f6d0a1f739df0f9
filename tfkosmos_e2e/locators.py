"""Locator resolution for semantic UI fields.

A :class:`FieldSpec` describes *what* a control is (its role and accessible
name, its label, placeholder, visible text, or a structural CSS fallback).
:class:`LocatorResolver` turns the spec into a Playwright locator by trying
those strategies in priority order, and :class:`ScreenHandle` wraps the
spec so that every operation re-resolves against the current DOM instead of
holding on to a node from a previous render.

Patterns are regular expressions and are expected to cover every locale the
UI ships (see :mod:`tfkosmos_e2e.fields`).
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

import anyio
from playwright.async_api import Locator, Page

from tfkosmos_e2e.errors import LocatorNotFound, WaitTimedOut

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """Semantic description of one logical control.

    Only the strategies whose attributes are set are attempted. ``index``
    picks one element out of several equally valid matches; ``multiple``
    marks a collection (table rows, notifications) where any number of
    matches is expected. ``text_fallback`` lets a CSS-scoped text pattern
    fall back to matching the text anywhere on the page.
    """

    name: str
    role: Optional[str] = None
    role_name: Optional[str] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    text: Optional[str] = None
    css: Optional[str] = None
    index: Optional[int] = None
    multiple: bool = False
    ignore_case: bool = True
    text_fallback: bool = False

    def at(self, index: int) -> "FieldSpec":
        return replace(self, index=index, multiple=False)

    def _regex(self, pattern: str) -> re.Pattern:
        return re.compile(pattern, re.IGNORECASE if self.ignore_case else 0)

    def strategies(self) -> List[Tuple[str, Callable[[Page], Locator]]]:
        """Ordered ``(description, factory)`` pairs for this field."""
        found: List[Tuple[str, Callable[[Page], Locator]]] = []
        if self.role:
            if self.role_name:
                name = self._regex(self.role_name)
                found.append(
                    (f"role={self.role} name=/{self.role_name}/", lambda p, r=self.role, n=name: p.get_by_role(r, name=n))
                )
            else:
                found.append((f"role={self.role}", lambda p, r=self.role: p.get_by_role(r)))
        if self.label:
            label = self._regex(self.label)
            found.append((f"label=/{self.label}/", lambda p, rx=label: p.get_by_label(rx)))
        if self.placeholder:
            placeholder = self._regex(self.placeholder)
            found.append((f"placeholder=/{self.placeholder}/", lambda p, rx=placeholder: p.get_by_placeholder(rx)))
        if self.text:
            text = self._regex(self.text)
            if self.css:
                found.append(
                    (f"css={self.css} text=/{self.text}/", lambda p, c=self.css, rx=text: p.locator(c).filter(has_text=rx))
                )
                if self.text_fallback:
                    found.append((f"text=/{self.text}/", lambda p, rx=text: p.get_by_text(rx)))
            else:
                found.append((f"text=/{self.text}/", lambda p, rx=text: p.get_by_text(rx)))
        if self.css and not self.text:
            found.append((f"css={self.css}", lambda p, c=self.css: p.locator(c)))
        return found


@dataclass
class Resolution:
    """Outcome of a single resolution pass."""

    spec: FieldSpec
    locator: Optional[Locator]
    strategy: Optional[str]
    count: int
    attempted: List[str]

    @property
    def found(self) -> bool:
        return self.locator is not None


class LocatorResolver:
    """Resolve :class:`FieldSpec` objects against a live page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def page(self) -> Page:
        return self._page

    def handle(self, spec: FieldSpec) -> "ScreenHandle":
        return ScreenHandle(self, spec)

    async def probe(self, spec: FieldSpec) -> Resolution:
        """Try each strategy in order without raising."""
        attempted: List[str] = []
        for description, factory in spec.strategies():
            locator = factory(self._page)
            count = await locator.count()
            attempted.append(f"{description} -> {count} match(es)")

            if spec.multiple:
                if count >= 1:
                    return Resolution(spec, locator, description, count, attempted)
                continue
            if spec.index is not None:
                if count > spec.index:
                    return Resolution(spec, locator.nth(spec.index), description, count, attempted)
                continue
            if count == 1:
                if len(attempted) > 1:
                    logger.debug(f"Field '{spec.name}' resolved by fallback strategy {description}")
                return Resolution(spec, locator, description, count, attempted)

        return Resolution(spec, None, None, 0, attempted)

    async def resolve(self, spec: FieldSpec) -> Locator:
        """Return the winning locator or raise :class:`LocatorNotFound`."""
        resolution = await self.probe(spec)
        if resolution.locator is None:
            ambiguous = any(
                not line.endswith("-> 0 match(es)") for line in resolution.attempted
            ) and spec.index is None and not spec.multiple
            raise LocatorNotFound(field=spec.name, attempted=tuple(resolution.attempted), ambiguous=ambiguous)
        return resolution.locator


class ScreenHandle:
    """Lazy, re-resolving reference to a logical UI element."""

    def __init__(self, resolver: LocatorResolver, spec: FieldSpec) -> None:
        self._resolver = resolver
        self.spec = spec

    def __repr__(self) -> str:
        return f"ScreenHandle({self.spec.name})"

    @property
    def name(self) -> str:
        return self.spec.name

    def nth(self, index: int) -> "ScreenHandle":
        """Handle for one element of a collection."""
        return ScreenHandle(self._resolver, self.spec.at(index))

    async def locate(self) -> Locator:
        return await self._resolver.resolve(self.spec)

    async def is_present(self) -> bool:
        resolution = await self._resolver.probe(self.spec)
        return resolution.found

    async def count(self) -> int:
        """Number of matches of the first strategy that matches anything."""
        for _description, factory in self.spec.strategies():
            count = await factory(self._resolver.page).count()
            if count:
                return count
        return 0

    async def is_visible(self) -> bool:
        resolution = await self._resolver.probe(self.spec)
        if resolution.locator is None:
            return False
        target = resolution.locator.first if self.spec.multiple else resolution.locator
        return await target.is_visible()

    async def is_enabled(self) -> bool:
        return await (await self.locate()).is_enabled()

    async def wait_until_visible(self, timeout: float, interval: float = 0.2) -> None:
        """Poll until the field resolves and is visible, or raise :class:`WaitTimedOut`."""
        start = anyio.current_time()
        deadline = start + timeout
        attempted: List[str] = []
        while True:
            resolution = await self._resolver.probe(self.spec)
            attempted = resolution.attempted
            if resolution.locator is not None:
                target = resolution.locator.first if self.spec.multiple else resolution.locator
                if await target.is_visible():
                    return
            now = anyio.current_time()
            if now >= deadline:
                break
            await anyio.sleep(min(interval, deadline - now))
        raise WaitTimedOut(
            what=f"field '{self.spec.name}' to become visible",
            timeout=timeout,
            elapsed=anyio.current_time() - start,
            attempted=tuple(attempted),
        )

    async def click(self) -> None:
        await (await self.locate()).click()

    async def fill(self, value: str) -> None:
        await (await self.locate()).fill(value)

    async def select(self, value: str) -> None:
        await (await self.locate()).select_option(value)

    async def set_value(self, value: str) -> None:
        """Fill an input or pick an option, whichever the control is."""
        locator = await self.locate()
        tag = await locator.evaluate("el => el.tagName.toLowerCase()")
        if tag == "select":
            await locator.select_option(value)
        else:
            await locator.fill(value)

    async def check(self) -> None:
        await (await self.locate()).check()

    async def uncheck(self) -> None:
        await (await self.locate()).uncheck()

    async def is_checked(self) -> bool:
        return await (await self.locate()).is_checked()

    async def text_content(self) -> str:
        locator = await self.locate()
        if self.spec.multiple:
            texts = await locator.all_text_contents()
            return "\n".join(t.strip() for t in texts if t)
        return (await locator.text_content()) or ""

    async def all_text_contents(self) -> List[str]:
        resolution = await self._resolver.probe(self.spec)
        if resolution.locator is None:
            return []
        return [text.strip() for text in await resolution.locator.all_text_contents()]
