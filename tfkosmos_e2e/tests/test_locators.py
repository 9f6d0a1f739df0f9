"""Locator strategy ordering and resolution, against a fake page."""
import re

import pytest

from tfkosmos_e2e.errors import LocatorNotFound
from tfkosmos_e2e.fields import CONNECTION_FIELDS, RESOURCES_FIELDS
from tfkosmos_e2e.locators import FieldSpec, LocatorResolver


class FakeLocator:
    def __init__(self, description, matches):
        self.description = description
        self.matches = matches
        self.clicked = False

    async def count(self):
        return self.matches

    def nth(self, index):
        return FakeLocator(f"{self.description}[{index}]", 1)

    @property
    def first(self):
        return self.nth(0)

    async def is_visible(self):
        return self.matches > 0

    async def click(self):
        self.clicked = True

    def filter(self, has_text):
        return FakeLocator(f"{self.description} filter={has_text.pattern}", self.matches)


class FakePage:
    """Answers every lookup of one kind (role, label, ...) with a fixed match count."""

    def __init__(self, counts):
        self.counts = counts
        self.calls = []
        self.locators = []
        self.keys = []

    def _lookup(self, kind, key):
        pattern = key.pattern if isinstance(key, re.Pattern) else key
        self.calls.append(kind)
        self.keys.append(key)
        locator = FakeLocator(f"{kind}:{pattern}", self.counts.get(kind, 0))
        self.locators.append(locator)
        return locator

    def get_by_role(self, role, name=None):
        return self._lookup("role", name)

    def get_by_label(self, label):
        return self._lookup("label", label)

    def get_by_placeholder(self, placeholder):
        return self._lookup("placeholder", placeholder)

    def get_by_text(self, text):
        return self._lookup("text", text)

    def locator(self, css):
        return self._lookup("css", css)


class TestFieldSpec:
    def test_strategy_order(self):
        spec = FieldSpec("f", role="button", role_name="Go", label="L", placeholder="P", css=".x")
        descriptions = [description for description, _ in spec.strategies()]
        assert [d.split("=")[0] for d in descriptions] == ["role", "label", "placeholder", "css"]

    def test_css_scoped_text_with_fallback(self):
        spec = CONNECTION_FIELDS["connection_success"]
        descriptions = [description for description, _ in spec.strategies()]
        assert descriptions[0].startswith("css=")
        assert descriptions[1].startswith("text=")
        assert len(descriptions) == 2

    def test_patterns_cover_both_locales(self):
        toggle = re.compile(RESOURCES_FIELDS["filter_toggle"].role_name)
        assert toggle.search("フィルタ")
        assert toggle.search("Filter (hide)")
        select_all = re.compile(RESOURCES_FIELDS["select_all"].label)
        assert select_all.search("すべて選択")
        assert select_all.search("Select all")
        assert not select_all.search("Select test-user-01")

    def test_case_sensitive_patterns(self):
        spec = FieldSpec("tab", role="button", role_name="^AWS$", ignore_case=False)
        _, factory = spec.strategies()[0]
        page = FakePage({"role": 1})
        factory(page)
        assert page.locators[0].description == "role:^AWS$"
        assert not page.keys[0].flags & re.IGNORECASE
        _, factory = FieldSpec("save", role="button", role_name="^Save$").strategies()[0]
        factory(page)
        assert page.keys[1].flags & re.IGNORECASE


@pytest.mark.asyncio
async def test_first_unique_strategy_wins():
    page = FakePage({"role": 0, "label": 1, "placeholder": 1})
    resolver = LocatorResolver(page)
    resolution = await resolver.probe(FieldSpec("profile", role="textbox", role_name="x", label="Profile", placeholder="default"))
    assert resolution.found
    assert resolution.strategy.startswith("label=")
    assert page.calls == ["role", "label"]


@pytest.mark.asyncio
async def test_ambiguous_match_falls_through():
    page = FakePage({"label": 2, "css": 1})
    resolver = LocatorResolver(page)
    resolution = await resolver.probe(FieldSpec("region", label="Region", css="#region"))
    assert resolution.strategy == "css=#region"


@pytest.mark.asyncio
async def test_index_picks_among_matches():
    page = FakePage({"label": 2})
    locator = await LocatorResolver(page).resolve(FieldSpec("profile", label="Profile", index=1))
    assert locator.description == "label:Profile[1]"


@pytest.mark.asyncio
async def test_multiple_accepts_any_count():
    page = FakePage({"css": 7})
    resolution = await LocatorResolver(page).probe(FieldSpec("rows", css="tbody tr", multiple=True))
    assert resolution.count == 7


@pytest.mark.asyncio
async def test_not_found_lists_every_attempt():
    page = FakePage({})
    with pytest.raises(LocatorNotFound) as excinfo:
        await LocatorResolver(page).resolve(FieldSpec("save", role="button", role_name="Save", css="#save"))
    error = excinfo.value
    assert not error.ambiguous
    assert len(error.attempted) == 2
    assert all(line.endswith("0 match(es)") for line in error.attempted)


@pytest.mark.asyncio
async def test_ambiguous_is_reported():
    page = FakePage({"label": 3})
    with pytest.raises(LocatorNotFound) as excinfo:
        await LocatorResolver(page).resolve(FieldSpec("region", label="Region"))
    assert excinfo.value.ambiguous


@pytest.mark.asyncio
async def test_handle_re_resolves_on_every_call():
    page = FakePage({"css": 1})
    handle = LocatorResolver(page).handle(FieldSpec("save", css="#save"))
    await handle.click()
    await handle.click()
    assert page.calls == ["css", "css"]
    assert page.locators[0] is not page.locators[1]
    assert page.locators[1].clicked


@pytest.mark.asyncio
async def test_handle_visibility_without_match():
    handle = LocatorResolver(FakePage({})).handle(FieldSpec("spinner", css=".loading-spinner"))
    assert not await handle.is_present()
    assert not await handle.is_visible()
    assert await handle.count() == 0
    assert await handle.all_text_contents() == []
