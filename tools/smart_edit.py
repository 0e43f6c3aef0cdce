"""
Multi-strategy edit application.

Model-proposed edits rarely match the file byte for byte, so an edit is tried
against a cascade of matchers, first success wins:

1. line-number  the given line contains old_text (or old_text is empty)
2. exact        old_text occurs once (or replace_all is set)
3. fuzzy        best sliding window of equal height, average line similarity > 0.7
4. context      the middle line of old_text matches exactly one file line (> 0.8)
5. partial      stripped old_text is a substring of exactly one line

An ambiguous outcome at any stage stops the cascade: the caller gets the count
or a request for more context, never a guessed edit.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

FUZZY_THRESHOLD = 0.7
CONTEXT_THRESHOLD = 0.8


@dataclass
class EditResult:
    """Outcome of apply_edit. On failure, content is None and error explains why."""
    success: bool
    content: Optional[str] = None
    lines_changed: int = 0
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    strategy: Optional[str] = None
    score: Optional[float] = None
    preview: str = ""
    error: Optional[str] = None
    ambiguous: bool = False

    @property
    def matched_range(self) -> Optional[Tuple[int, int]]:
        if self.start_line is None or self.end_line is None:
            return None
        return self.start_line, self.end_line


def _ambiguous(error: str) -> EditResult:
    return EditResult(success=False, error=error, ambiguous=True)


# ------------------------------------------------------------------
# Similarity
# ------------------------------------------------------------------

def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit insert/delete/substitute costs."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - distance / longer length; 1.0 for equal strings, 0.0 if exactly one is empty."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    longer = max(len(a), len(b))
    return (longer - levenshtein(a, b)) / longer


def block_score(window: List[str], pattern: List[str]) -> float:
    """Average per-line similarity of stripped lines; 0 when heights differ."""
    if len(window) != len(pattern) or not pattern:
        return 0.0
    total = sum(similarity(w.strip(), p.strip()) for w, p in zip(window, pattern))
    return total / len(pattern)


def _pattern_lines(old_text: str) -> List[str]:
    lines = old_text.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


# ------------------------------------------------------------------
# Strategies. Each returns an EditResult on success or ambiguity, None to fall through.
# ------------------------------------------------------------------

def _by_line_number(lines: List[str], line_number: int, old_text: str, new_text: str) -> Optional[EditResult]:
    index = line_number - 1
    if index < 0 or index >= len(lines):
        logger.debug(f"line {line_number} out of range ({len(lines)} lines)")
        return None
    if old_text and old_text not in lines[index]:
        logger.debug(f"line {line_number} does not contain the search text")
        return None
    replaced = new_text.split("\n")
    lines = lines[:index] + replaced + lines[index + 1:]
    return EditResult(
        success=True, content="\n".join(lines), lines_changed=1,
        start_line=line_number, end_line=line_number + len(replaced) - 1,
    )


def _by_exact(content: str, old_text: str, new_text: str, replace_all: bool) -> Optional[EditResult]:
    if not old_text:
        return None
    count = content.count(old_text)
    if count == 0:
        return None
    if count > 1 and not replace_all:
        return _ambiguous(
            f"Found {count} occurrences of the search text. Add more surrounding context "
            f"to make it unique, pass a line number, or set replace_all to replace all {count}."
        )
    first = content.index(old_text)
    last = content.rindex(old_text)
    start_line = _line_of(content, first)
    if replace_all:
        new_content = content.replace(old_text, new_text)
    else:
        new_content = content.replace(old_text, new_text, 1)
    # Range covers the replacement text as it sits in the new content
    shift = (len(new_text) - len(old_text)) * (count - 1)
    end_line = _line_of(new_content, last + shift + max(len(new_text) - 1, 0))
    return EditResult(
        success=True, content=new_content, lines_changed=count,
        start_line=start_line, end_line=max(end_line, start_line),
    )


def _by_fuzzy(lines: List[str], old_text: str, new_text: str) -> Optional[EditResult]:
    pattern = _pattern_lines(old_text)
    if not pattern or len(pattern) > len(lines):
        return None

    best_score = 0.0
    best: List[int] = []
    for i in range(len(lines) - len(pattern) + 1):
        score = block_score(lines[i:i + len(pattern)], pattern)
        if score <= FUZZY_THRESHOLD:
            continue
        if score > best_score:
            best_score, best = score, [i]
        elif score == best_score:
            best.append(i)

    if not best:
        return None
    if len(best) > 1:
        starts = ", ".join(str(i + 1) for i in best[:10])
        return _ambiguous(
            f"Found {len(best)} equally similar blocks (score {best_score:.2f}) starting at lines {starts}. "
            "Ambiguous: provide more context or a line number."
        )

    index = best[0]
    replacement = new_text.split("\n")
    lines = lines[:index] + replacement + lines[index + len(pattern):]
    return EditResult(
        success=True, content="\n".join(lines), lines_changed=len(pattern),
        start_line=index + 1, end_line=index + len(pattern), score=best_score,
    )


def _by_context(lines: List[str], old_text: str, new_text: str) -> Optional[EditResult]:
    pattern = old_text.split("\n")
    anchor = pattern[len(pattern) // 2].strip()
    if not anchor:
        return None
    candidates = [i for i, line in enumerate(lines) if similarity(line.strip(), anchor) > CONTEXT_THRESHOLD]
    if not candidates:
        return None
    if len(candidates) > 1:
        where = ", ".join(str(i + 1) for i in candidates[:10])
        return _ambiguous(
            f"Found {len(candidates)} potential matches (lines {where}). "
            "Ambiguous: provide more context or a line number."
        )
    index = candidates[0]
    score = similarity(lines[index].strip(), anchor)
    lines = lines[:index] + [new_text] + lines[index + 1:]
    return EditResult(
        success=True, content="\n".join(lines), lines_changed=1,
        start_line=index + 1, end_line=index + 1, score=score,
    )


def _by_partial(lines: List[str], old_text: str, new_text: str) -> Optional[EditResult]:
    needle = old_text.strip()
    if not needle or "\n" in needle:
        return None
    matches = [i for i, line in enumerate(lines) if needle in line]
    if not matches:
        return None
    if len(matches) > 1 or lines[matches[0]].count(needle) > 1:
        total = sum(lines[i].count(needle) for i in matches)
        return _ambiguous(
            f"Found {total} occurrences of the search text on {len(matches)} line(s). "
            "Be more specific or set replace_all."
        )
    index = matches[0]
    lines = list(lines)
    lines[index] = lines[index].replace(needle, new_text, 1)
    return EditResult(
        success=True, content="\n".join(lines), lines_changed=1,
        start_line=index + 1, end_line=index + 1,
    )


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------

def apply_edit(
    content: str,
    old_text: str,
    new_text: str,
    line_number: Optional[int] = None,
    replace_all: bool = False,
    context_window: int = 3,
) -> EditResult:
    """Apply an edit to content, trying each strategy in turn."""
    lines = content.split("\n")
    attempts = []
    if line_number is not None:
        attempts.append(("line-number", lambda: _by_line_number(lines, int(line_number), old_text, new_text)))
    attempts.extend([
        ("exact", lambda: _by_exact(content, old_text, new_text, replace_all)),
        ("fuzzy", lambda: _by_fuzzy(lines, old_text, new_text)),
        ("context", lambda: _by_context(lines, old_text, new_text)),
        ("partial", lambda: _by_partial(lines, old_text, new_text)),
    ])

    for strategy, attempt in attempts:
        result = attempt()
        if result is None:
            continue
        result.strategy = strategy
        if not result.success:
            logger.info(f"Edit stopped at {strategy} strategy: {result.error}")
            return result
        result.preview = line_preview(result.content, result.start_line, result.end_line, context_window)
        logger.debug(f"Edit applied via {strategy} (lines {result.start_line}-{result.end_line})")
        return result

    if line_number is not None and not (1 <= int(line_number) <= len(lines)):
        return EditResult(
            success=False,
            error=f"Line number {line_number} is out of range (file has {len(lines)} lines) "
                  "and no other strategy found a match.",
        )
    return EditResult(
        success=False,
        error="Could not find a suitable match for editing. Re-read the file, then provide a line number "
              "or more specific context.",
    )


def line_preview(content: Optional[str], start_line: Optional[int], end_line: Optional[int],
                 context_lines: int = 2) -> str:
    """Numbered excerpt of content around start_line..end_line; edited lines marked with '>'."""
    if content is None or start_line is None or end_line is None:
        return ""
    lines = content.split("\n")
    first = max(0, start_line - 1 - context_lines)
    last = min(len(lines), end_line + context_lines)
    out = []
    for i in range(first, last):
        num = i + 1
        marker = ">" if start_line <= num <= end_line else " "
        out.append(f"{marker} {num:4} | {lines[i]}")
    return "\n".join(out)
