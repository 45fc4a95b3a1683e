import unittest

import httpx

from bkci.pagination import parse_int, parse_link_relations, parse_pagination

_BASE = "https://api.buildkite.com/v2/organizations/acme/pipelines/web/builds"


def _link(**relations) -> str:
    return ", ".join(f'<{_BASE}?{query}>; rel="{name}"' for name, query in relations.items())


class ParsePaginationTests(unittest.TestCase):
    def test_explicit_headers_with_blank_prev(self):
        headers = {"x-page": "1", "x-per-page": "30", "x-next-page": "2", "x-prev-page": ""}

        self.assertEqual(
            parse_pagination(headers),
            {"page": 1, "perPage": 30, "nextPage": 2, "prevPage": None, "hasMore": True},
        )

    def test_link_header_on_first_page(self):
        headers = {"link": _link(next="page=2&per_page=3", last="page=42&per_page=3")}

        self.assertEqual(
            parse_pagination(headers, requested_per_page=3),
            {"page": 1, "perPage": 3, "nextPage": 2, "prevPage": None, "hasMore": True},
        )

    def test_prev_relation_infers_current_page(self):
        headers = {"link": _link(prev="page=2&per_page=10", next="page=4&per_page=10")}

        self.assertEqual(
            parse_pagination(headers),
            {"page": 3, "perPage": 10, "nextPage": 4, "prevPage": 2, "hasMore": True},
        )

    def test_requested_values_when_no_headers(self):
        self.assertEqual(
            parse_pagination({}, requested_page=5, requested_per_page=25),
            {"page": 5, "perPage": 25, "nextPage": None, "prevPage": None, "hasMore": False},
        )

    def test_no_signal_at_all(self):
        self.assertEqual(
            parse_pagination({}),
            {"page": None, "perPage": None, "nextPage": None, "prevPage": None, "hasMore": False},
        )

    def test_header_beats_requested_page(self):
        pagination = parse_pagination({"x-page": "7"}, requested_page=2)
        self.assertEqual(pagination["page"], 7)

    def test_requested_page_beats_link_inference(self):
        headers = {"link": _link(prev="page=2", next="page=4")}
        self.assertEqual(parse_pagination(headers, requested_page=9)["page"], 9)

    def test_next_page_one_falls_through_to_first_relation(self):
        headers = {"link": _link(next="page=1", first="page=1&per_page=5")}
        pagination = parse_pagination(headers)
        self.assertEqual(pagination["page"], 1)
        self.assertEqual(pagination["perPage"], 5)

    def test_last_page_uses_first_relation(self):
        headers = {"link": _link(first="page=1&per_page=20", prev="page=4&per_page=20")}
        pagination = parse_pagination(headers)
        self.assertEqual(pagination["page"], 5)
        self.assertFalse(pagination["hasMore"])

    def test_per_page_falls_back_across_relations_in_order(self):
        headers = {"link": _link(next="page=3", prev="page=1", first="page=1", last="page=9&per_page=50")}
        self.assertEqual(parse_pagination(headers)["perPage"], 50)

    def test_explicit_next_header_beats_link(self):
        headers = {"x-next-page": "8", "link": _link(next="page=3")}
        self.assertEqual(parse_pagination(headers)["nextPage"], 8)

    def test_non_numeric_header_is_absent_not_zero(self):
        headers = {"x-next-page": "soon", "x-page": "abc", "link": _link(next="page=3")}
        pagination = parse_pagination(headers)
        self.assertEqual(pagination["nextPage"], 3)
        self.assertEqual(pagination["page"], 2)

    def test_header_lookup_is_case_insensitive(self):
        headers = httpx.Headers({"X-Next-Page": "4", "X-Per-Page": "15"})
        pagination = parse_pagination(headers)
        self.assertEqual(pagination["nextPage"], 4)
        self.assertEqual(pagination["perPage"], 15)

    def test_repeated_link_headers_are_combined(self):
        headers = httpx.Headers(
            [
                ("link", f'<{_BASE}?page=1>; rel="prev"'),
                ("link", f'<{_BASE}?page=3>; rel="next"'),
            ]
        )
        pagination = parse_pagination(headers)
        self.assertEqual((pagination["prevPage"], pagination["page"], pagination["nextPage"]), (1, 2, 3))

    def test_has_more_tracks_next_page(self):
        cases = [
            {},
            {"x-next-page": ""},
            {"x-next-page": "2"},
            {"link": _link(next="page=2")},
            {"link": _link(prev="page=2")},
            {"x-page": "3", "x-prev-page": "2"},
        ]
        for headers in cases:
            with self.subTest(headers=headers):
                pagination = parse_pagination(headers)
                self.assertEqual(pagination["hasMore"], pagination["nextPage"] is not None)


class LinkRelationTests(unittest.TestCase):
    def test_skips_malformed_segments_and_urls(self):
        header = ", ".join(
            [
                "garbage",
                '</relative?page=2>; rel="next"',
                f'<{_BASE}?page=5>; rel="last"',
                f'<{_BASE}?page=1>; rel="self"',
            ]
        )
        relations = parse_link_relations(header)
        self.assertIsNone(relations["next"])
        self.assertIsNotNone(relations["last"])
        self.assertEqual(set(relations), {"next", "prev", "first", "last"})

    def test_blank_header(self):
        self.assertEqual(parse_link_relations("  "), {"next": None, "prev": None, "first": None, "last": None})


class ParseIntTests(unittest.TestCase):
    def test_leading_integer(self):
        self.assertEqual(parse_int("12"), 12)
        self.assertEqual(parse_int(" 7"), 7)
        self.assertEqual(parse_int("3abc"), 3)

    def test_unparseable(self):
        self.assertIsNone(parse_int(None))
        self.assertIsNone(parse_int(""))
        self.assertIsNone(parse_int("next"))
