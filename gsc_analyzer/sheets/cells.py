"""Resolve raw spreadsheet cells into plain values.

A cell can hold plain text, a =HYPERLINK() formula wrapping a URL, or some
other formula. Each cell is resolved once, here, so the analyzers only ever
see plain strings.
"""

import re
from typing import Any

from ..models import CellContent, FormulaCell, HyperlinkCell, PlainCell

_STRING_ARG = r'"((?:[^"]|"")*)"'
_HYPERLINK = re.compile(
    r"^=\s*HYPERLINK\(\s*" + _STRING_ARG + r"\s*(?:[,;]\s*" + _STRING_ARG + r"\s*)?\)\s*$",
    re.IGNORECASE,
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _unquote(value: str | None) -> str:
    return (value or "").replace('""', '"')


def resolve_cell(value: Any, formula: Any = None) -> CellContent:
    """Build a CellContent from a cell's rendered value and its formula.

    Args:
        value: Value as read with unformatted or formatted rendering
        formula: Same cell read with formula rendering, if available
    """
    display = _text(value)
    if isinstance(formula, str) and formula.lstrip().startswith("="):
        match = _HYPERLINK.match(formula.strip())
        if match:
            url = _unquote(match.group(1)).strip()
            label = _unquote(match.group(2)).strip() if match.group(2) is not None else display
            return HyperlinkCell(url=url, label=label)
        return FormulaCell(expression=formula.strip(), display=display)
    return PlainCell(text=display, value=value)


def cell_text(content: CellContent, prefer_url: bool = True) -> str:
    """Plain string for a resolved cell."""
    if isinstance(content, HyperlinkCell):
        if prefer_url:
            return content.url
        return content.label or content.url
    if isinstance(content, FormulaCell):
        return content.display
    return content.text


def cell_value(content: CellContent) -> Any:
    """Typed value to write back for a resolved cell.

    Plain cells keep the number or string Sheets returned, so rewriting a
    tab does not turn numeric columns into text.
    """
    if isinstance(content, PlainCell) and content.value is not None:
        return content.value
    return cell_text(content)


def resolve_grid(values: list[list], formulas: list[list] | None = None) -> list[list[CellContent]]:
    """Resolve a whole sheet read twice (values and formulas)."""
    formulas = formulas or []
    grid = []
    for r, row in enumerate(values):
        formula_row = formulas[r] if r < len(formulas) else []
        grid.append([
            resolve_cell(value, formula_row[c] if c < len(formula_row) else None)
            for c, value in enumerate(row)
        ])
    return grid
