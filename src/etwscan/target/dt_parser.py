"""
target.dt_parser — Parse the debugger's ``dt`` structure dumps.

Turns output such as::

    nt!_WMI_LOGGER_CONTEXT
       +0x000 LoggerId         : 0x24
       +0x158 Consumers        : _LIST_ENTRY [ 0xffffc80f`a1b2c3d0 - 0xffffc80f`a1b2c3d0 ]
       +0x168 NumConsumers     : 0n1

into ``{"LoggerId": 0x24, "Consumers.Flink": ..., "Consumers.Blink": ...,
"NumConsumers": 1}`` plus a ``{field: offset}`` map.  Lines whose value
is not numeric (strings, unresolved types) are skipped.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

_FIELD_RE = re.compile(r"^(\s*)\+0x([0-9a-fA-F]+)\s+(\w+)\s*:\s*(.*)$")
_LIST_ENTRY_RE = re.compile(
    r"\[\s*(0x[0-9a-fA-F`]+|\(null\))\s*-\s*(0x[0-9a-fA-F`]+|\(null\))\s*\]"
)
_NUMBER_RE = re.compile(r"^(0n-?\d+|0x[0-9a-fA-F`]+|0y[01]+|[0-9a-fA-F]{8}`[0-9a-fA-F]{8}|-?\d+)\b")


def parse_value(text: str) -> Optional[int]:
    """Parse one ``dt`` value token; ``None`` when it is not numeric."""
    text = text.strip()
    if text.startswith("(null)"):
        return 0
    m = _NUMBER_RE.match(text)
    if not m:
        return None
    tok = m.group(1)
    if tok.startswith("0n"):
        return int(tok[2:])
    if tok.startswith("0y"):
        return int(tok[2:], 2)
    if tok.startswith("0x") or "`" in tok:
        return int(tok.removeprefix("0x").replace("`", ""), 16)
    return int(tok)


def _list_entry(text: str) -> Optional[Tuple[int, int]]:
    m = _LIST_ENTRY_RE.search(text)
    if not m:
        return None
    return tuple(parse_value(g) or 0 for g in m.groups())  # type: ignore[return-value]


def parse_dt(lines: List[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
    """
    Parse ``dt`` output lines.

    Returns ``(fields, offsets)``.  Nested members (``dt -r``) are keyed
    by their dotted path, resolved from indentation.
    """
    fields: Dict[str, int] = {}
    offsets: Dict[str, int] = {}
    stack: List[Tuple[int, str]] = []

    for line in lines:
        m = _FIELD_RE.match(line.rstrip())
        if not m:
            continue
        indent, off, name, rest = len(m.group(1)), int(m.group(2), 16), m.group(3), m.group(4)

        while stack and stack[-1][0] >= indent:
            stack.pop()
        path = ".".join([p for _, p in stack] + [name])
        stack.append((indent, name))

        if len(stack) == 1:
            offsets[name] = off

        entry = _list_entry(rest) if rest.startswith("_LIST_ENTRY") else None
        if entry is not None:
            fields[f"{path}.Flink"], fields[f"{path}.Blink"] = entry
            continue

        value = parse_value(rest)
        if value is not None:
            fields[path] = value

    return fields, offsets
