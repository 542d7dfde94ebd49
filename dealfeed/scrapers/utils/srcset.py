"""`srcset` attribute parsing and candidate selection."""

from dataclasses import dataclass
from typing import List, Optional

from .normalizer import absolutize_url


@dataclass(frozen=True)
class SrcsetCandidate:
    """One comma-separated item of a `srcset` value."""

    url: str
    width: Optional[int] = None
    density: Optional[float] = None


def parse_srcset(value: str) -> List[SrcsetCandidate]:
    """Split a `srcset` value into candidates.

    Each item is `url [descriptor]` where the descriptor is `<int>w` or
    `<decimal>x`. Unparseable descriptors are ignored.

    Args:
        value: Raw attribute value

    Returns:
        Candidates in document order
    """
    candidates: List[SrcsetCandidate] = []
    if not value:
        return candidates

    for item in value.split(","):
        parts = item.split()
        if not parts:
            continue

        width: Optional[int] = None
        density: Optional[float] = None
        for token in parts[1:]:
            if token.endswith("w"):
                try:
                    width = int(token[:-1])
                except ValueError:
                    pass
            elif token.endswith("x"):
                try:
                    density = float(token[:-1])
                except ValueError:
                    pass

        candidates.append(SrcsetCandidate(url=parts[0], width=width, density=density))

    return candidates


def select_candidate(candidates: List[SrcsetCandidate]) -> Optional[SrcsetCandidate]:
    """Pick the best candidate.

    Largest width wins (first seen on ties); width-tagged entries always
    beat density-tagged or bare ones. Without widths the largest density
    wins, and without any descriptor the first entry.
    """
    if not candidates:
        return None

    widths = [c for c in candidates if c.width is not None]
    if widths:
        return max(widths, key=lambda c: c.width)

    densities = [c for c in candidates if c.density is not None]
    if densities:
        return max(densities, key=lambda c: c.density)

    return candidates[0]


def best_from_srcset(value: str, base_url: str) -> Optional[str]:
    """Absolute URL of the best `srcset` candidate.

    Args:
        value: Raw `srcset` attribute value
        base_url: URL of the page the attribute was found on

    Returns:
        Absolute URL, or None if there is no candidate or the winner
        cannot be absolutized
    """
    best = select_candidate(parse_srcset(value))
    if best is None:
        return None
    return absolutize_url(best.url, base_url)
