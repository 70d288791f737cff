"""Selection of the font closest to a description, per CSS Fonts Level 3 section 5.2."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass

NORMAL_STRETCH = 1.0


class Style(enum.Enum):
    NORMAL = "normal"
    ITALIC = "italic"
    OBLIQUE = "oblique"


@dataclass(frozen=True)
class FontProperties:
    style: Style = Style.NORMAL
    weight: float = 400.0
    stretch: float = NORMAL_STRETCH


class FontNotFoundError(LookupError):
    """No candidate font matches the query."""


_STYLE_PREFERENCE = {
    Style.ITALIC: (Style.ITALIC, Style.OBLIQUE, Style.NORMAL),
    Style.OBLIQUE: (Style.OBLIQUE, Style.ITALIC, Style.NORMAL),
    Style.NORMAL: (Style.NORMAL, Style.OBLIQUE, Style.ITALIC),
}


def _closest(values: list[float], target: float, prefer_lower: bool, inclusive: bool) -> float:
    """Closest value on the preferred side of ``target``, else closest on the other side."""
    if prefer_lower:
        preferred = [v for v in values if (v <= target if inclusive else v < target)]
        if preferred:
            return min(preferred, key=lambda v: target - v)
        return min(values, key=lambda v: v - target)
    preferred = [v for v in values if (v >= target if inclusive else v > target)]
    if preferred:
        return min(preferred, key=lambda v: v - target)
    return min(values, key=lambda v: target - v)


def find_best_match(candidates: Sequence[FontProperties], query: FontProperties) -> int:
    """Return the index of the candidate that best matches ``query``."""
    matching = list(range(len(candidates)))
    if not matching:
        raise FontNotFoundError("no font candidates")

    # font-stretch
    stretches = [candidates[i].stretch for i in matching]
    if query.stretch in stretches:
        matching_stretch = query.stretch
    else:
        matching_stretch = _closest(
            stretches, query.stretch, prefer_lower=query.stretch <= NORMAL_STRETCH, inclusive=False
        )
    matching = [i for i in matching if candidates[i].stretch == matching_stretch]

    # font-style
    styles = {candidates[i].style for i in matching}
    matching_style = next(s for s in _STYLE_PREFERENCE[query.style] if s in styles)
    matching = [i for i in matching if candidates[i].style == matching_style]

    # font-weight; 450 is used as the cutoff between 400 and 500.
    weights = [candidates[i].weight for i in matching]
    if query.weight in weights:
        matching_weight = query.weight
    elif 400.0 <= query.weight < 450.0 and 500.0 in weights:
        matching_weight = 500.0
    elif 450.0 <= query.weight <= 500.0 and 400.0 in weights:
        matching_weight = 400.0
    else:
        matching_weight = _closest(
            weights, query.weight, prefer_lower=query.weight <= 500.0, inclusive=True
        )
    matching = [i for i in matching if candidates[i].weight == matching_weight]

    if not matching:
        raise FontNotFoundError("no font matches the query")
    return matching[0]