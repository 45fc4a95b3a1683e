import unittest

from bkci.glob_match import glob_to_regex
from bkci.selection import select_artifacts

def glob_matches(glob, path):
    return glob_to_regex(glob).match(path) is not None


LISTING = [
    {"id": "a1", "jobId": "j1", "path": "reports/junit.xml"},
    {"id": "a2", "jobId": "j1", "path": "reports/nested/junit.xml"},
    {"id": "a3", "jobId": "j2", "path": "coverage/index.html"},
    {"id": None, "jobId": "j2", "path": "reports/orphan.xml"},
]


class GlobMatchTests(unittest.TestCase):
    def test_single_star_stays_within_segment(self):
        self.assertTrue(glob_matches("reports/*.xml", "reports/junit.xml"))
        self.assertFalse(glob_matches("reports/*.xml", "reports/nested/junit.xml"))

    def test_double_star_crosses_segments(self):
        self.assertTrue(glob_matches("dir/**", "dir/a/b.txt"))
        self.assertTrue(glob_matches("playwright-report/**", "playwright-report/index.html"))
        self.assertFalse(glob_matches("playwright-report/**", "other/index.html"))

    def test_full_string_match(self):
        self.assertFalse(glob_matches("*.xml", "junit.xml.bak"))
        self.assertFalse(glob_matches("junit.xml", "reports/junit.xml"))

    def test_metacharacters_are_literal(self):
        self.assertTrue(glob_matches("out (1)/a+b.[x]", "out (1)/a+b.[x]"))
        self.assertFalse(glob_matches("a.txt", "abtxt"))
        self.assertFalse(glob_matches("file?.txt", "file1.txt"))
        self.assertTrue(glob_matches("file?.txt", "file?.txt"))

    def test_compiled_pattern_is_anchored(self):
        self.assertIsNone(glob_to_regex("*.log").search("dir/x.log"))


class SelectArtifactsTests(unittest.TestCase):
    def test_missing_explicit_id(self):
        selection = select_artifacts([], ["a1"])

        self.assertEqual(selection.selected, [])
        self.assertEqual(selection.failures, [{"artifactId": "a1", "reason": "artifact not found"}])

    def test_ids_in_request_order_then_glob_in_listing_order(self):
        selection = select_artifacts(LISTING, ["a3", "nope"], "reports/**")

        self.assertEqual([a["id"] for a in selection.selected], ["a3", "a1", "a2"])
        self.assertEqual(selection.failures, [{"artifactId": "nope", "reason": "artifact not found"}])

    def test_id_and_glob_selecting_same_artifact_deduplicates(self):
        selection = select_artifacts(LISTING, ["a1", "a1"], "reports/*.xml")

        self.assertEqual([a["id"] for a in selection.selected], ["a1"])
        self.assertEqual(selection.failures, [])

    def test_glob_without_matches_and_no_ids(self):
        selection = select_artifacts(LISTING, [], "*.zip")

        self.assertEqual(selection.selected, [])
        self.assertEqual(selection.failures, [{"artifactId": "glob", "reason": "no artifacts matched glob"}])

    def test_glob_without_matches_but_with_ids_adds_no_glob_failure(self):
        selection = select_artifacts(LISTING, ["a3"], "*.zip")

        self.assertEqual([a["id"] for a in selection.selected], ["a3"])
        self.assertEqual(selection.failures, [])

    def test_glob_skips_artifacts_without_id(self):
        selection = select_artifacts(LISTING, [], "reports/*.xml")
        self.assertEqual([a["id"] for a in selection.selected], ["a1"])

    def test_failed_ids_never_selected(self):
        selection = select_artifacts(LISTING, ["a2", "zz"], "coverage/**")
        selected_ids = {a["id"] for a in selection.selected}
        for failure in selection.failures:
            self.assertNotIn(failure["artifactId"], selected_ids)
