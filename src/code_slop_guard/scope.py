# SPDX-License-Identifier: Apache-2.0
# Line-oriented scope heuristics. There is no parser here: function bodies and
# catch blocks are approximated by keyword anchors and brace counting, so
# deeply nested closures and multi-statement chains can be misclassified.

from __future__ import annotations

import re

SCOPE_LOOKBACK = 20
SCOPE_LOOKAHEAD = 20
FALLBACK_WINDOW = 2
CHAIN_LOOKAHEAD = 5
CATCH_BRACE_LOOKAHEAD = 4

_HOOKS = ("useState", "useEffect", "useCallback", "useMemo")
_GUARD_TOKENS = (".catch(", "try {", "try{")
_CATCH_RE = re.compile(r"\bcatch\b\s*(?:\([^)]*\))?\s*$")


def _opens_function(line: str) -> bool:
    if "function" in line or "=>" in line:
        return True
    return "const" in line and any(hook in line for hook in _HOOKS)


def _has_guard(line: str) -> bool:
    return any(token in line for token in _GUARD_TOKENS)


def find_function_scope(lines: list[str], index: int) -> tuple[int, int] | None:
    """Best-effort ``(start, end)`` line range of the function enclosing ``lines[index]``.

    Walks back at most ``SCOPE_LOOKBACK`` lines for a function anchor, then
    forward from it counting braces until the depth returns to zero. The body
    must open on the anchor line itself; an anchor without a brace there (a
    braceless arrow, say) yields ``None``, as does a missing end.
    """
    start = None
    for i in range(index, max(0, index - SCOPE_LOOKBACK) - 1, -1):
        line = lines[i]
        if _opens_function(line) and ("{" in line or "=>" in line):
            start = i
            break
        # Arrow on the previous line, body brace on this one.
        if i > 0 and "=>" in lines[i - 1] + line and line.strip().startswith("{"):
            start = i
            break
    if start is None:
        return None

    depth = 0
    entered = False
    for i in range(start, min(len(lines), index + SCOPE_LOOKAHEAD)):
        for ch in lines[i]:
            if ch == "{":
                depth += 1
                if i == start and depth == 1:
                    entered = True
            elif ch == "}":
                depth -= 1
                if entered and depth == 0:
                    return start, i
    return None


def is_call_handled(lines: list[str], index: int) -> bool:
    """Whether the call on ``lines[index]`` looks guarded by try/catch or ``.catch()``."""
    scope = find_function_scope(lines, index)
    if scope is None:
        lo = max(0, index - FALLBACK_WINDOW)
        hi = min(len(lines), index + FALLBACK_WINDOW + 1)
    else:
        lo, hi = scope[0], scope[1] + 1
    if any(_has_guard(line) for line in lines[lo:hi]):
        return True

    current = lines[index]
    if ".then(" in current or ".catch(" in current:
        for line in lines[index : min(len(lines), index + CHAIN_LOOKAHEAD)]:
            if ".catch(" in line:
                return True
            stripped = line.strip()
            if ";" in line and not stripped.endswith("\\") and not stripped.endswith(","):
                break
    return False


def _opens_catch(lines: list[str], index: int, head: str) -> bool:
    if _CATCH_RE.search(head.rstrip()) or ".catch(" in head:
        return True
    if head.strip():
        return False
    # Brace alone on its line: the catch clause sits on a line just above.
    for j in range(index - 1, max(-1, index - 1 - CATCH_BRACE_LOOKAHEAD), -1):
        previous = lines[j].strip()
        if previous:
            return bool(_CATCH_RE.search(previous))
    return False


def is_in_guarded_scope(lines: list[str], index: int, column: int | None = None) -> bool:
    """Whether ``lines[index]`` looks like error-handling code.

    Scans backward character by character, tracking unmatched closing braces.
    The first ``{`` that is not balanced encloses the target; if it belongs to
    a catch clause the answer is yes, otherwise the scan continues outward.
    A closed catch block above the target also counts once the depth returns
    to zero behind it, so a log written right after its ``catch`` stays quiet.
    ``column`` (1-based) limits the target line to the text before the match.
    """
    depth = 0
    seen_catch = False
    for i in range(index, -1, -1):
        line = lines[i]
        if i == index and column is not None:
            line = line[: max(0, column - 1)]
        for pos in range(len(line) - 1, -1, -1):
            ch = line[pos]
            if ch == "}":
                depth += 1
            elif ch == "{":
                if not depth:
                    if _opens_catch(lines, i, line[:pos]):
                        return True
                    continue
                depth -= 1
                if _opens_catch(lines, i, line[:pos]):
                    seen_catch = True
                if depth == 0 and seen_catch:
                    return True
    return False
