"""Per-file expanded state for collapsible unchanged-line sections."""

from __future__ import annotations


class ExpandedSections:
    """Track expanded ``(file, section_index)`` pairs; default is collapsed.

    Indices are positions of collapsible entries in a file's diff lines. They
    are not revalidated when content reloads; an index that no longer points
    at a collapsible entry simply matches nothing.
    """

    def __init__(self) -> None:
        self._by_file: dict[str, set[int]] = {}

    def toggle(self, file_ref: str, section_index: int) -> bool:
        """Flip one section and return whether it is now expanded."""
        expanded = self._by_file.setdefault(file_ref, set())
        if section_index in expanded:
            expanded.discard(section_index)
            if not expanded:
                del self._by_file[file_ref]
            return False
        expanded.add(section_index)
        return True

    def has(self, file_ref: str, section_index: int) -> bool:
        return section_index in self._by_file.get(file_ref, ())

    def expanded_for(self, file_ref: str) -> frozenset[int]:
        return frozenset(self._by_file.get(file_ref, ()))

    def forget(self, file_ref: str) -> None:
        self._by_file.pop(file_ref, None)

    def clear(self) -> None:
        self._by_file.clear()
