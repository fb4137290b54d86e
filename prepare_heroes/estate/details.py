"""
Opportunity "details" block.

Copper gives opportunities a single free-text notes field. We keep auxiliary
state in it as ``Label: value`` lines (checkout link, checkout state, Stripe
payment ids). DetailBlock is an ordered view of those lines:

- a label matches a line that starts with ``Label:`` (label taken literally);
- setting a label replaces the first matching line in place, or appends a
  new line at the end;
- every other line, labeled or not, keeps its text and position;
- CRLF line endings are read as plain newlines and written back as ``\n``.
"""

import re
from typing import Dict, Iterable, List, Optional


def _label_pattern(label: str):
    return re.compile(rf'^{re.escape(label)}:')


def _clean(value) -> str:
    # A value never spans lines, otherwise it could not be matched again
    return ' '.join(str(value).splitlines())


class DetailBlock:

    def __init__(self, lines: Iterable[str] = ()):
        self._lines: List[str] = list(lines)

    @classmethod
    def parse(cls, text: Optional[str]) -> 'DetailBlock':
        if not text:
            return cls()
        return cls(line.rstrip('\r') for line in text.split('\n'))

    def __str__(self):
        return '\n'.join(self._lines)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def _find(self, label: str) -> Optional[int]:
        pattern = _label_pattern(label)
        for index, line in enumerate(self._lines):
            if pattern.match(line):
                return index
        return None

    def get(self, label: str, default: Optional[str] = None) -> Optional[str]:
        index = self._find(label)
        if index is None:
            return default
        return self._lines[index][len(label) + 1:].strip()

    def set(self, label: str, value) -> None:
        line = f"{label}: {_clean(value)}"
        index = self._find(label)
        if index is None:
            self._lines.append(line)
        else:
            self._lines[index] = line

    def update(self, updates: Dict[str, Optional[str]]) -> None:
        """Apply label updates in order. ``None`` leaves a label untouched; ``''`` clears it."""
        for label, value in updates.items():
            if value is None:
                continue
            self.set(label, value)

    def _index_of(self, line: str) -> Optional[int]:
        for index, existing in enumerate(self._lines):
            if existing.rstrip() == line:
                return index
        return None

    def _section_end(self, heading_index: int, labels: Optional[Iterable[str]]) -> int:
        """Index just past the last line belonging to the section at ``heading_index``."""
        patterns = [_label_pattern(label) for label in labels] if labels is not None else None
        end = heading_index + 1
        while end < len(self._lines):
            line = self._lines[end]
            if not line.strip():
                break
            if patterns is not None and not any(p.match(line) for p in patterns):
                break
            end += 1
        return end

    def append_section(self, heading: str, lines: Iterable[str], labels: Optional[Iterable[str]] = None) -> List[str]:
        """
        Add the lines not already present under ``heading``.

        The heading is written once, after a blank separator line. When it
        already exists, new lines go right after the section's last line.
        The section runs over the non-blank lines following the heading,
        limited to ``labels`` when given. Returns the lines that were added.
        """
        present = {existing.rstrip() for existing in self._lines}
        new_lines = []
        for line in lines:
            line = _clean(line).rstrip()
            if line not in present and line not in new_lines:
                new_lines.append(line)
        if not new_lines:
            return []

        heading_index = self._index_of(heading)
        if heading_index is None:
            if self._lines:
                self._lines.append('')
            self._lines.append(heading)
            self._lines.extend(new_lines)
        else:
            end = self._section_end(heading_index, labels)
            self._lines[end:end] = new_lines
        return new_lines


def upsert_details(text: Optional[str], updates: Dict[str, Optional[str]]) -> str:
    """Return ``text`` with each ``label -> value`` line replaced or appended."""
    block = DetailBlock.parse(text)
    block.update(updates)
    return str(block)
