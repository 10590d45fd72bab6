"""Tests for per-file expanded collapsible sections."""

from __future__ import annotations

import unittest

from lazyreview.runtime.sections import ExpandedSections


class ExpandedSectionsTests(unittest.TestCase):
    def test_sections_default_to_collapsed(self) -> None:
        sections = ExpandedSections()
        self.assertFalse(sections.has("a.py", 3))
        self.assertEqual(sections.expanded_for("a.py"), frozenset())

    def test_toggle_twice_restores_original_state(self) -> None:
        sections = ExpandedSections()
        sections.toggle("a.py", 1)
        before = (sections.has("a.py", 4), sections.expanded_for("a.py"))

        self.assertTrue(sections.toggle("a.py", 4))
        self.assertFalse(sections.toggle("a.py", 4))

        self.assertEqual((sections.has("a.py", 4), sections.expanded_for("a.py")), before)

    def test_toggle_twice_on_fresh_file_leaves_no_entry(self) -> None:
        sections = ExpandedSections()
        sections.toggle("b.py", 0)
        sections.toggle("b.py", 0)
        self.assertEqual(sections._by_file, {})

    def test_sections_are_scoped_per_file(self) -> None:
        sections = ExpandedSections()
        sections.toggle("a.py", 2)

        self.assertTrue(sections.has("a.py", 2))
        self.assertFalse(sections.has("b.py", 2))

    def test_forget_and_clear(self) -> None:
        sections = ExpandedSections()
        sections.toggle("a.py", 2)
        sections.toggle("b.py", 5)

        sections.forget("a.py")
        self.assertFalse(sections.has("a.py", 2))
        self.assertTrue(sections.has("b.py", 5))

        sections.clear()
        self.assertFalse(sections.has("b.py", 5))


if __name__ == "__main__":
    unittest.main()
