"""
Unit tests for the tree cache.
"""

from catalog_tree.domain.entities import Domain, Lesson, Level, Technology, Tutorial
from catalog_tree.tree.cache import UNFETCHED, Fetched, TreeCache, TreeNode, build_nodes

DOMAINS = [Domain(id="d1", name="Web Development"), Domain(id="d2", name="Programming")]
TECHNOLOGIES = [Technology(id="t1", name="HTML"), Technology(id="t2", name="CSS")]


def _loaded_cache() -> TreeCache:
    cache = TreeCache()
    cache.merge_children(None, None, DOMAINS)
    cache.merge_children(Level.DOMAIN, "d1", TECHNOLOGIES)
    return cache


class TestBuildNodes:
    """Tests for turning a response into child nodes."""

    def test_lessons_sorted_by_order(self):
        records = [
            Lesson(id="l2", title="B", order=2),
            Lesson(id="l1", title="A", order=1),
        ]

        nodes = build_nodes(Level.LESSON, records)

        assert [node.id for node in nodes] == ["l1", "l2"]

    def test_lesson_sort_is_stable_for_equal_order(self):
        records = [
            Lesson(id="x", title="X", order=1),
            Lesson(id="y", title="Y", order=1),
            Lesson(id="z", title="Z", order=0),
        ]

        nodes = build_nodes(Level.LESSON, records)

        assert [node.id for node in nodes] == ["z", "x", "y"]

    def test_fractional_lesson_order_sorts_after_lower_integer(self):
        records = [
            Lesson.from_payload({"_id": "a", "title": "A", "order": 1.5}),
            Lesson.from_payload({"_id": "b", "title": "B", "order": 1}),
            Lesson.from_payload({"_id": "c", "title": "C", "order": 2}),
        ]

        nodes = build_nodes(Level.LESSON, records)

        assert [node.id for node in nodes] == ["b", "a", "c"]

    def test_non_lessons_keep_server_order(self):
        nodes = build_nodes(Level.TECHNOLOGY, list(reversed(TECHNOLOGIES)))

        assert [node.id for node in nodes] == ["t2", "t1"]

    def test_empty_response_is_fetched_and_empty(self):
        children = build_nodes(Level.TUTORIAL, [])

        assert children.is_fetched
        assert children.is_empty
        assert len(children) == 0

    def test_changed_record_keeps_fetched_children(self):
        grandchildren = Fetched((TreeNode(Level.TUTORIAL, Tutorial(id="u1", title="Intro")),))
        previous = Fetched((TreeNode(Level.TECHNOLOGY, TECHNOLOGIES[0], grandchildren),))

        nodes = build_nodes(
            Level.TECHNOLOGY, [Technology(id="t1", name="HTML5")], previous
        )

        assert nodes.items[0].record.name == "HTML5"
        assert nodes.items[0].children is grandchildren


class TestTreeCacheMerge:
    """Tests for merging fetch responses."""

    def test_new_cache_is_unfetched(self):
        cache = TreeCache()

        assert cache.roots is UNFETCHED
        assert not cache.is_fetched(None)
        assert len(cache) == 0

    def test_merge_root_domains(self):
        cache = TreeCache()

        assert cache.merge_children(None, None, DOMAINS) is True

        assert cache.is_fetched(None)
        assert [node.id for node in cache.roots] == ["d1", "d2"]
        assert (Level.DOMAIN, "d1") in cache
        assert cache.get_node(Level.DOMAIN, "d2").children is UNFETCHED

    def test_merge_updates_only_target_node(self):
        cache = _loaded_cache()

        assert cache.is_fetched(Level.DOMAIN, "d1")
        assert not cache.is_fetched(Level.DOMAIN, "d2")
        assert [node.id for node in cache.get_children(Level.DOMAIN, "d1")] == ["t1", "t2"]

    def test_merge_shares_untouched_branches(self):
        cache = _loaded_cache()
        d2_before = cache.get_node(Level.DOMAIN, "d2")
        t2_before = cache.get_node(Level.TECHNOLOGY, "t2")

        cache.merge_children(Level.TECHNOLOGY, "t1", [Tutorial(id="u1", title="Intro")])

        assert cache.get_node(Level.DOMAIN, "d2") is d2_before
        assert cache.get_node(Level.TECHNOLOGY, "t2") is t2_before
        assert [node.id for node in cache.get_children(Level.TECHNOLOGY, "t1")] == ["u1"]

    def test_empty_response_marks_node_fetched(self):
        cache = _loaded_cache()

        cache.merge_children(Level.TECHNOLOGY, "t2", [])

        children = cache.get_children(Level.TECHNOLOGY, "t2")
        assert children.is_fetched
        assert children.is_empty

    def test_merging_same_response_twice_is_idempotent(self):
        cache = _loaded_cache()
        first = cache.roots

        cache.merge_children(Level.DOMAIN, "d1", TECHNOLOGIES)

        assert cache.roots == first
        assert len(cache) == 4

    def test_remerging_domains_keeps_fetched_descendants(self):
        cache = _loaded_cache()

        cache.merge_children(None, None, DOMAINS)

        assert cache.is_fetched(Level.DOMAIN, "d1")
        assert (Level.TECHNOLOGY, "t1") in cache

    def test_merge_into_unknown_node_is_rejected(self):
        cache = _loaded_cache()
        roots = cache.roots

        assert cache.merge_children(Level.DOMAIN, "missing", TECHNOLOGIES) is False
        assert cache.roots is roots

    def test_merge_into_leaf_is_rejected(self):
        cache = _loaded_cache()

        assert cache.merge_children(Level.LESSON, "l1", []) is False

    def test_duplicate_ids_first_occurrence_wins(self):
        cache = TreeCache()
        cache.merge_children(
            None, None, [Domain(id="d1", name="First"), Domain(id="d1", name="Second")]
        )

        assert cache.get_node(Level.DOMAIN, "d1").record.name == "First"

    def test_remerging_duplicate_ids_keeps_fetched_children(self):
        duplicates = [Domain(id="d", name="First"), Domain(id="d", name="Second")]
        cache = TreeCache()
        cache.merge_children(None, None, duplicates)
        cache.merge_children(Level.DOMAIN, "d", TECHNOLOGIES)
        before = cache.roots

        cache.merge_children(None, None, duplicates)

        assert cache.is_fetched(Level.DOMAIN, "d")
        assert [node.id for node in cache.get_children(Level.DOMAIN, "d")] == ["t1", "t2"]
        assert cache.roots.items[1].children is UNFETCHED
        assert cache.roots == before


class TestTreeCacheQueries:
    """Tests for lookups and traversal."""

    def test_get_node_returns_none_for_missing(self):
        assert _loaded_cache().get_node(Level.TUTORIAL, "u9") is None
        assert _loaded_cache().get_children(Level.TUTORIAL, "u9") is None

    def test_iter_nodes_is_depth_first_in_display_order(self):
        cache = _loaded_cache()

        assert [node.id for node in cache.iter_nodes()] == ["d1", "t1", "t2", "d2"]

    def test_clear_discards_everything(self):
        cache = _loaded_cache()

        cache.clear()

        assert cache.roots is UNFETCHED
        assert len(cache) == 0
        assert cache.merges == 0
        assert cache.get_node(Level.DOMAIN, "d1") is None

    def test_merges_are_counted(self):
        cache = _loaded_cache()

        cache.merge_children(Level.DOMAIN, "missing", [])

        assert cache.merges == 2
