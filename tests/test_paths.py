from __future__ import annotations

import textwrap
import unittest

from values_lint.paths import (
    collect_all_paths,
    find_line_for_path,
    format_path,
    match_glob,
    matches_ignore,
    split_path,
)
from values_lint.tree import parse_document


def parse_yaml(text: str):
    return parse_document(textwrap.dedent(text))


class MatchGlobTests(unittest.TestCase):
    def test_patterns(self) -> None:
        cases = [
            ("image.*", "image.repository", True),
            ("image.*", "image.tag", True),
            ("image.*", "service.tag", False),
            ("image.*", "image.tag.extra", False),
            ("global.**", "global.imageRegistry", True),
            ("global.**", "global.a.b.c", True),
            ("global.**", "global", True),
            ("global.**", "globals.x", False),
            ("a.**.z", "a.z", True),
            ("a.**.z", "a.b.c.z", True),
            ("a.**.z", "a.b.c", False),
            ("**.tag", "image.tag", True),
            ("*.*.cpu", "resources.limits.cpu", True),
            ("exact.key", "exact.key", True),
            ("exact.key", "exact.other", False),
            ("Image.*", "image.tag", False),
        ]
        for pattern, path, expected in cases:
            with self.subTest(pattern=pattern, path=path):
                self.assertEqual(match_glob(pattern, path), expected)

    def test_matches_any_pattern(self) -> None:
        self.assertTrue(matches_ignore("customKey", ["image.*", "customKey"]))
        self.assertFalse(matches_ignore("service.port", ["image.*", "customKey"]))
        self.assertFalse(matches_ignore("service.port", None))


class PathFormatTests(unittest.TestCase):
    def test_split_path(self) -> None:
        self.assertEqual(split_path("a.b[0][1].c"), ["a", "b", 0, 1, "c"])
        self.assertEqual(split_path(""), [])

    def test_format_path(self) -> None:
        self.assertEqual(format_path(["a", 0, "b"]), "a[0].b")
        self.assertEqual(format_path([]), "")


class PathIndexTests(unittest.TestCase):
    def test_collect_all_paths(self) -> None:
        defaults = parse_yaml(
            """\
            image:
              repository: nginx
              tag: latest
            replicaCount: 1
            ports:
              - name: http
            """
        )
        self.assertEqual(
            collect_all_paths(defaults),
            {
                "image": "image",
                "image.repository": "repository",
                "image.tag": "tag",
                "replicaCount": "replicaCount",
                "ports": "ports",
            },
        )

    def test_non_mapping_has_no_paths(self) -> None:
        self.assertEqual(collect_all_paths(None), {})


class FindLineTests(unittest.TestCase):
    def test_lines(self) -> None:
        root = parse_yaml(
            """\
            image:
              tag: latest
            items:
              - name: a
              - name: b
            """
        )
        self.assertEqual(find_line_for_path(root, ""), 1)
        self.assertEqual(find_line_for_path(root, "image.tag"), 2)
        self.assertEqual(find_line_for_path(root, "items[1].name"), 5)
        self.assertEqual(find_line_for_path(root, "items[7].name"), 0)
        self.assertEqual(find_line_for_path(root, "image.missing"), 0)
        self.assertEqual(find_line_for_path(root, "image.tag.deeper"), 0)


if __name__ == "__main__":
    unittest.main()
