"""
Unit tests for the default-path walk.
"""

import pytest

from catalog_tree.domain.entities import Domain, Level, Technology
from catalog_tree.tree.cache import TreeCache, TreeNode
from catalog_tree.tree.controller import ExpansionController
from catalog_tree.tree.default_path import (
    DefaultPathExpander,
    pick_domain,
    pick_technology,
    pick_tutorial,
)


def _domains(*names):
    return [TreeNode(Level.DOMAIN, Domain(id=f"d{i}", name=name)) for i, name in enumerate(names)]


def _technologies(*names):
    return [
        TreeNode(Level.TECHNOLOGY, Technology(id=f"t{i}", name=name)) for i, name in enumerate(names)
    ]


def _expander(gateway, keywords=("web", "development"), technology="html"):
    cache = TreeCache()
    controller = ExpansionController(cache, gateway)
    return cache, controller, DefaultPathExpander(cache, controller, keywords, technology)


class TestPickers:
    """Tests for the candidate selection heuristics."""

    def test_domain_matches_any_keyword_case_insensitive(self):
        nodes = _domains("Programming", "Mobile DEVELOPMENT", "Web Design")

        assert pick_domain(nodes, ("web", "development")).id == "d1"

    def test_domain_without_match(self):
        assert pick_domain(_domains("Data Science", "Design"), ("web", "development")) is None

    def test_technology_requires_exact_name(self):
        nodes = _technologies("HTML5", "html", "HTML")

        assert pick_technology(nodes, "html").id == "t1"

    def test_technology_without_exact_match(self):
        assert pick_technology(_technologies("HTML5", "XHTML"), "html") is None

    def test_technology_match_does_not_trim_whitespace(self):
        nodes = _technologies(" HTML ", "Html")

        assert pick_technology(nodes, "html").id == "t1"
        assert pick_technology(_technologies(" html"), "html") is None

    def test_tutorial_is_first_in_order(self):
        nodes = _technologies("a", "b")

        assert pick_tutorial(nodes).id == "t0"
        assert pick_tutorial([]) is None


class TestDefaultPathExpander:
    """Tests for walking the default branch."""

    @pytest.mark.asyncio
    async def test_walks_domain_technology_tutorial(self, fake_gateway):
        cache, controller, expander = _expander(fake_gateway)
        cache.merge_children(None, None, await fake_gateway.list_domains())

        path = await expander.run()

        assert path == [(Level.DOMAIN, "d1"), (Level.TECHNOLOGY, "t1"), (Level.TUTORIAL, "u1")]
        assert controller.is_expanded(Level.TUTORIAL, "u1")
        assert [node.id for node in cache.get_children(Level.TUTORIAL, "u1")] == ["l1", "l2"]
        assert not controller.is_expanded(Level.DOMAIN, "d2")

    @pytest.mark.asyncio
    async def test_fetches_are_sequential(self, fake_gateway):
        cache, _, expander = _expander(fake_gateway)
        cache.merge_children(None, None, await fake_gateway.list_domains())

        await expander.run()

        assert fake_gateway.calls == [
            ("domains", None),
            ("technologies", "d1"),
            ("tutorials", "t1"),
            ("lessons", "u1"),
        ]

    @pytest.mark.asyncio
    async def test_stops_when_no_domain_matches(self, make_gateway):
        gateway = make_gateway({("domains", None): [{"_id": "d9", "name": "Data Science"}]})
        cache, controller, expander = _expander(gateway)
        cache.merge_children(None, None, await gateway.list_domains())

        assert await expander.run() == []
        assert gateway.calls == [("domains", None)]
        assert controller.expanded == {}

    @pytest.mark.asyncio
    async def test_stops_after_domain_without_html(self, make_gateway):
        gateway = make_gateway(
            {
                ("domains", None): [{"_id": "d1", "name": "Web Development"}],
                ("technologies", "d1"): [{"_id": "t5", "name": "HTML5"}],
            }
        )
        cache, _, expander = _expander(gateway)
        cache.merge_children(None, None, await gateway.list_domains())

        assert await expander.run() == [(Level.DOMAIN, "d1")]
        assert gateway.count("tutorials", "t5") == 0

    @pytest.mark.asyncio
    async def test_stops_silently_on_failed_step(self, fake_gateway):
        cache, controller, expander = _expander(fake_gateway)
        cache.merge_children(None, None, await fake_gateway.list_domains())
        fake_gateway.fail_next("tutorials", "t1")

        path = await expander.run()

        assert path == [(Level.DOMAIN, "d1")]
        assert controller.error_for(Level.TECHNOLOGY, "t1") is not None
        assert fake_gateway.count("lessons", "u1") == 0

    @pytest.mark.asyncio
    async def test_technology_without_tutorials_ends_walk(self, make_gateway):
        gateway = make_gateway(
            {
                ("domains", None): [{"_id": "d1", "name": "Web"}],
                ("technologies", "d1"): [{"_id": "t1", "name": "html"}],
                ("tutorials", "t1"): [],
            }
        )
        cache, _, expander = _expander(gateway)
        cache.merge_children(None, None, await gateway.list_domains())

        assert await expander.run() == [(Level.DOMAIN, "d1"), (Level.TECHNOLOGY, "t1")]

    @pytest.mark.asyncio
    async def test_does_nothing_before_domains_load(self, fake_gateway):
        _, _, expander = _expander(fake_gateway)

        assert await expander.run() == []
        assert fake_gateway.calls == []

    @pytest.mark.asyncio
    async def test_custom_heuristic(self, fake_gateway):
        cache, _, expander = _expander(fake_gateway, keywords=("programming",), technology="Python")
        cache.merge_children(None, None, await fake_gateway.list_domains())

        path = await expander.run()

        assert path == [(Level.DOMAIN, "d2"), (Level.TECHNOLOGY, "t3"), (Level.TUTORIAL, "u3")]
