"""
Template Resolver Module

Maps a requested (width, height) to a placement template.

Resolution order:
1. Exact match: a loaded template whose probed width/height are within
   `template_match_tolerance` of the request
2. Derive: build a sized variant from a base family (when allowed)
3. Similarity fallback: the loaded template minimising
   |target_area - area| / target_area + |target_ratio - ratio| / max(target_ratio, ratio)
   (a degraded match, logged as a warning)
4. First available template when no template exposes dimensions (degraded)
5. None when the catalog is empty, after one reload of the standard set per run

Results, including None, are cached per rounded dimension key so each key is
resolved at most once per run.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .errors import ColumnPlacerError, TemplateDerivationError
from .host import ModelHost
from .settings import PlacementSettings
from .templates import TemplateEntry, dimension_key, symbol_name_for, template_dimensions

logger = logging.getLogger("TemplateResolver")


class SymbolCache:
    """Per-run mapping of dimension key to resolved template (or None on failure)"""

    def __init__(self):
        self._entries: Dict[str, Optional[TemplateEntry]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[TemplateEntry]:
        return self._entries.get(key)

    def store(self, key: str, entry: Optional[TemplateEntry]) -> Optional[TemplateEntry]:
        """Cache `entry` under `key`; keys resolving to the same template share one entry object."""
        if entry is not None:
            for existing in self._entries.values():
                if existing is not None and existing.identity == entry.identity:
                    entry = existing
                    break
        self._entries[key] = entry
        return entry

    def resolved_templates(self) -> List[TemplateEntry]:
        """Distinct non-None templates, in first-resolved order."""
        seen = set()
        templates = []
        for entry in self._entries.values():
            if entry is not None and entry.identity not in seen:
                seen.add(entry.identity)
                templates.append(entry)
        return templates


def similarity_score(target_width: float, target_height: float, width: float, height: float) -> float:
    """Relative area difference plus relative aspect-ratio difference; 0 is identical."""
    target_area = target_width * target_height
    area = width * height
    target_ratio = target_width / target_height
    ratio = width / height

    area_score = abs(target_area - area) / target_area
    ratio_score = abs(target_ratio - ratio) / max(target_ratio, ratio)
    return area_score + ratio_score


class TemplateResolver:
    """
    Resolves templates for rectangle dimensions with a per-run cache.

    Args:
        host: Model host providing the template catalog
        settings: Matching tolerance, derivation switch, probe names, base family names
        log: Logger (module logger if omitted)
    """

    def __init__(self, host: ModelHost, settings: Optional[PlacementSettings] = None,
                 log: Optional[logging.Logger] = None):
        self.host = host
        self.settings = settings or PlacementSettings()
        self.logger = log or logger
        self.cache = SymbolCache()
        self.resolution_attempts = 0
        self._reload_attempted = False

    def resolve(self, width: float, height: float) -> Optional[TemplateEntry]:
        """
        Template for a (width, height) request.

        Returns:
            Matching, derived or fallback template; None if the catalog is empty
        """
        key = dimension_key(width, height)
        if key in self.cache:
            self.logger.debug(f"Found cached template for dimensions {width:.3f} x {height:.3f}")
            return self.cache.get(key)

        self.resolution_attempts += 1
        self.logger.info(f"Resolving template for dimensions {width:.3f} x {height:.3f}")

        entry = self._resolve_uncached(width, height)
        return self.cache.store(key, entry)

    def _resolve_uncached(self, width: float, height: float) -> Optional[TemplateEntry]:
        templates = self.host.get_templates()
        if not templates:
            templates = self._reload_templates()
        if not templates:
            self.logger.error(f"No column templates available for {width:.3f} x {height:.3f}")
            return None

        exact = self.find_exact(width, height, templates)
        if exact is not None:
            self.logger.info(f"Found existing template {exact} for dimensions {width:.3f} x {height:.3f}")
            return exact

        if self.settings.allow_template_derivation:
            derived = self.derive(width, height, templates)
            if derived is not None:
                return derived

        self.logger.warning(f"Could not find or create template for {width:.3f} x {height:.3f}, "
                            f"trying fallbacks")

        match = self.find_similar(width, height, templates)
        if match is not None:
            entry, score = match
            self.logger.warning(f"Using similar template {entry} for dimensions {width:.3f} x {height:.3f} "
                                f"(similarity score: {score:.3f}); degraded, non-exact match")
            return entry

        fallback = templates[0]
        self.logger.warning(f"Using fallback template {fallback} for dimensions {width:.3f} x {height:.3f}; "
                            f"degraded, no template exposes dimensions")
        return fallback

    def _reload_templates(self) -> List[TemplateEntry]:
        if self._reload_attempted:
            return []
        self._reload_attempted = True

        self.logger.warning("No column templates loaded, loading standard template set")
        try:
            count = self.host.load_standard_templates()
        except ColumnPlacerError as e:
            self.logger.error(f"Could not load standard templates: {e}")
            return []

        self.logger.info(f"Standard template reload added {count} templates")
        return self.host.get_templates()

    def find_exact(self, width: float, height: float,
                   templates: List[TemplateEntry]) -> Optional[TemplateEntry]:
        tolerance = self.settings.template_match_tolerance

        for entry in templates:
            dimensions = template_dimensions(entry, self.settings.dimension_probes)
            if dimensions is None:
                continue
            if abs(dimensions[0] - width) < tolerance and abs(dimensions[1] - height) < tolerance:
                return entry

        return None

    def find_similar(self, width: float, height: float,
                     templates: List[TemplateEntry]) -> Optional[Tuple[TemplateEntry, float]]:
        """Lowest-scoring template with readable dimensions, with its score."""
        best_match = None
        best_score = float("inf")

        for entry in templates:
            dimensions = template_dimensions(entry, self.settings.dimension_probes)
            if dimensions is None:
                continue

            score = similarity_score(width, height, dimensions[0], dimensions[1])
            if score < best_score:
                best_score = score
                best_match = entry

        if best_match is None:
            return None
        return best_match, best_score

    def select_base_family(self, templates: List[TemplateEntry]) -> Optional[str]:
        """
        Family to derive new sizes from: the preferred family, then the first
        family whose name contains a common column family name, then the first family.
        """
        families = list(dict.fromkeys(entry.family_name for entry in templates))
        if not families:
            return None

        preferred = self.settings.preferred_family
        if preferred:
            for family in families:
                if family.lower() == preferred.lower():
                    return family

        for common_name in self.settings.base_family_names:
            for family in families:
                if common_name.lower() in family.lower():
                    return family

        return families[0]

    def derive(self, width: float, height: float,
               templates: List[TemplateEntry]) -> Optional[TemplateEntry]:
        family = self.select_base_family(templates)
        if family is None:
            return None

        base = next(entry for entry in templates if entry.family_name == family)

        try:
            entry = self.host.derive_template(
                base, symbol_name_for(width, height), {"width": width, "height": height}
            )
        except TemplateDerivationError as e:
            self.logger.warning(f"Could not derive template for {width:.3f} x {height:.3f} "
                                f"from {base}: {e}")
            return None

        self.logger.info(f"Created new template {entry} for dimensions {width:.3f} x {height:.3f}")
        return entry
