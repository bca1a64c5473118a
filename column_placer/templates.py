"""
Templates Module

Placement templates (family + sized symbol) as seen by the resolver, and the
capability probe that reads their dimensions.

Hosts name dimension attributes differently ("b" vs "Width", "h" vs "Height"),
so dimensions are looked up through an ordered table per role: the first
attribute name in the role's list that the template carries wins.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

WIDTH_PARAMETER_NAMES = ("b", "Width", "Depth", "d")
HEIGHT_PARAMETER_NAMES = ("h", "Height", "t")

DIMENSION_PROBES: Dict[str, Tuple[str, ...]] = {
    "width": WIDTH_PARAMETER_NAMES,
    "height": HEIGHT_PARAMETER_NAMES,
}


@dataclass
class TemplateEntry:
    """A sized placement template in the host's catalog"""
    family_name: str
    symbol_name: str
    parameters: Dict[str, float] = field(default_factory=dict)
    is_active: bool = False

    @property
    def identity(self) -> str:
        return f"{self.family_name}:{self.symbol_name}"

    def __str__(self) -> str:
        return f"'{self.symbol_name}' ({self.family_name})"


def probe_parameter(
    parameters: Mapping[str, float],
    names: Sequence[str]
) -> Optional[Tuple[str, float]]:
    """Return (name, value) of the first name in `names` present in `parameters`."""
    for name in names:
        value = parameters.get(name)
        if value is not None:
            return name, value
    return None


def template_dimensions(
    entry: TemplateEntry,
    probes: Optional[Mapping[str, Sequence[str]]] = None
) -> Optional[Tuple[float, float]]:
    """
    Read (width, height) from a template through the probe table.

    Returns:
        (width, height), or None when either is missing or not positive
    """
    probes = probes or DIMENSION_PROBES
    width = probe_parameter(entry.parameters, probes["width"])
    height = probe_parameter(entry.parameters, probes["height"])

    if width is None or height is None:
        return None
    if width[1] <= 0 or height[1] <= 0:
        return None
    return width[1], height[1]


def dimension_key(width: float, height: float) -> str:
    """Cache key for a (width, height) request, rounded to 3 decimals."""
    return f"{width:.3f}:{height:.3f}"


def symbol_name_for(width: float, height: float) -> str:
    return f"{width:.3f}x{height:.3f}"
