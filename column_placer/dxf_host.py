"""
DXF Host Module

ezdxf-backed host model for batch column placement.

Mapping of host concepts onto a DXF document:
- Segments: LINE entities in modelspace (handle = segment id)
- Templates: block definitions tagged with XDATA app id COLUMN_PLACER, which
  stores the family name and the active flag. The block name is the symbol
  identity; ATTDEF tags with numeric default values are the named dimension
  attributes ("b", "h", "Width", ...).
- Elements: INSERT references of a template block, placed on the layer
  "<column_layer>-<level name>" at the level's elevation
- Levels: taken from settings, DXF has no level table
"""

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import ActivationError, CreationError, TemplateDerivationError, TemplateLoadError
from .geometry import LineSegment, Point
from .host import Level, ModelHost
from .settings import PlacementSettings
from .templates import TemplateEntry, probe_parameter, symbol_name_for, template_dimensions

logger = logging.getLogger("DxfModelHost")

try:
    import ezdxf
    from ezdxf.addons import Importer
    from ezdxf.lldxf.const import DXFError
    EZDXF_AVAILABLE = True
except ImportError:
    EZDXF_AVAILABLE = False
    logger.warning("ezdxf not available")

APP_ID = "COLUMN_PLACER"


def _format_value(value: float) -> str:
    return f"{value:.6f}"


class DxfModelHost(ModelHost):
    """
    Host model over an ezdxf document.

    Args:
        doc: ezdxf Document
        settings: Placement settings (levels, layers, standard templates)
        log: Logger (module logger if omitted)

    Raises:
        RuntimeError: If ezdxf not available
    """

    def __init__(self, doc, settings: Optional[PlacementSettings] = None,
                 log: Optional[logging.Logger] = None):
        if not EZDXF_AVAILABLE:
            raise RuntimeError("ezdxf required for the DXF host model")

        super().__init__(log or logger)
        self.doc = doc
        self.msp = doc.modelspace()
        self.settings = settings or PlacementSettings()

        if not doc.appids.has_entry(APP_ID):
            doc.appids.new(APP_ID)

    @classmethod
    def from_file(cls, dxf_path: str, settings: Optional[PlacementSettings] = None,
                  log: Optional[logging.Logger] = None) -> "DxfModelHost":
        """
        Open a DXF drawing.

        Raises:
            RuntimeError: If ezdxf not available
            FileNotFoundError: If dxf_path doesn't exist
            ValueError: If the file is not a valid DXF
        """
        if not EZDXF_AVAILABLE:
            raise RuntimeError("ezdxf required for the DXF host model")

        path = Path(dxf_path)
        if not path.exists():
            raise FileNotFoundError(f"DXF file not found: {path}")

        try:
            doc = ezdxf.readfile(str(path))
        except (IOError, ezdxf.DXFStructureError) as e:
            raise ValueError(f"Invalid DXF file structure: {e}") from e

        return cls(doc, settings, log)

    def save(self, output_path: str) -> None:
        self.doc.saveas(str(output_path))
        self.logger.info(f"Saved drawing to: {output_path}")

    # Segments

    def read_line_segments(self, layers: Optional[List[str]] = None) -> List[LineSegment]:
        """
        Collect LINE entities from modelspace.

        Args:
            layers: Only lines on these layers; all lines when None or empty
        """
        segments = []

        for entity in self.msp.query("LINE"):
            try:
                if layers and entity.dxf.layer not in layers:
                    continue

                start = entity.dxf.start
                end = entity.dxf.end
                segments.append(LineSegment(
                    entity.dxf.handle,
                    Point(start.x, start.y, start.z),
                    Point(end.x, end.y, end.z),
                    entity.dxf.layer
                ))

            except Exception as e:
                self.logger.warning(f"Failed to process LINE: {e}")
                continue

        self.logger.info(f"Collected {len(segments)} line segments")
        return segments

    # Levels

    def get_levels(self) -> List[Level]:
        return sorted(self.settings.levels, key=lambda level: level.elevation)

    def level_layer(self, level: Level) -> str:
        return f"{self.settings.column_layer}-{level.name}"

    # Templates

    def _read_template_xdata(self, block) -> Tuple[str, bool]:
        family = self.settings.standard_family_name
        active = False
        for tag in block.block.get_xdata(APP_ID):
            if tag.code == 1000:
                family = tag.value
            elif tag.code == 1070:
                active = bool(tag.value)
        return family, active

    def _write_template_xdata(self, block, family: str, active: bool) -> None:
        block.block.set_xdata(APP_ID, [(1000, family), (1070, 1 if active else 0)])

    def _entry_from_block(self, block) -> TemplateEntry:
        family, active = self._read_template_xdata(block)
        parameters: Dict[str, float] = {}

        for attdef in block.query("ATTDEF"):
            try:
                parameters[attdef.dxf.tag] = float(attdef.dxf.text)
            except ValueError:
                self.logger.debug(f"Skipping non-numeric attribute '{attdef.dxf.tag}' "
                                  f"in block '{block.name}'")

        return TemplateEntry(family, block.name, parameters, active)

    def get_templates(self) -> List[TemplateEntry]:
        templates = [
            self._entry_from_block(block)
            for block in self.doc.blocks
            if block.block.has_xdata(APP_ID)
        ]
        self.logger.debug(f"Found {len(templates)} column templates in drawing")
        return templates

    def get_template(self, symbol_name: str) -> Optional[TemplateEntry]:
        block = self.doc.blocks.get(symbol_name)
        if block is None or not block.block.has_xdata(APP_ID):
            return None
        return self._entry_from_block(block)

    def create_template(
        self,
        family_name: str,
        symbol_name: str,
        parameters: Mapping[str, float],
        active: bool = False
    ) -> TemplateEntry:
        """
        Build a template block. Requires an open scope.

        The block holds a centred rectangle outline (when width and height can
        be probed) and one ATTDEF per parameter.
        """
        scope = self.require_scope("create_template")

        block = self.doc.blocks.new(name=symbol_name)
        entry = TemplateEntry(family_name, symbol_name, dict(parameters), active)

        dimensions = template_dimensions(entry, self.settings.dimension_probes)
        if dimensions is not None:
            half_w, half_h = dimensions[0] / 2, dimensions[1] / 2
            block.add_lwpolyline(
                [(-half_w, -half_h), (half_w, -half_h), (half_w, half_h), (-half_w, half_h)],
                close=True
            )

        for tag, value in parameters.items():
            block.add_attdef(tag, (0, 0), _format_value(value), dxfattribs={"flags": 1})

        self._write_template_xdata(block, family_name, active)
        scope.register_undo(lambda: self.doc.blocks.delete_block(symbol_name, safe=False))

        self.logger.info(f"Created template block {entry}")
        return entry

    def derive_template(
        self,
        base: TemplateEntry,
        symbol_name: str,
        dimensions: Mapping[str, float]
    ) -> TemplateEntry:
        probes = self.settings.dimension_probes
        width_attr = probe_parameter(base.parameters, probes["width"])
        height_attr = probe_parameter(base.parameters, probes["height"])

        if width_attr is None or height_attr is None:
            raise TemplateDerivationError(
                f"Template {base} has no settable width/height attribute"
            )
        if self.doc.blocks.get(base.symbol_name) is None:
            raise TemplateDerivationError(f"Base template block '{base.symbol_name}' not found")

        block_name = f"{base.family_name}-{symbol_name}"
        existing = self.get_template(block_name)
        if existing is not None:
            self.logger.info(f"Reusing derived template {existing}")
            return existing

        parameters = dict(base.parameters)
        parameters[width_attr[0]] = dimensions["width"]
        parameters[height_attr[0]] = dimensions["height"]

        with self.mutation_scope(f"Derive Column Template {block_name}"):
            try:
                entry = self.create_template(base.family_name, block_name, parameters, active=False)
            except DXFError as e:
                raise TemplateDerivationError(f"Failed to create block '{block_name}': {e}") from e

        return entry

    def activate_template(self, entry: TemplateEntry) -> None:
        scope = self.require_scope("activate_template")

        block = self.doc.blocks.get(entry.symbol_name)
        if block is None or not block.block.has_xdata(APP_ID):
            raise ActivationError(f"Template block '{entry.symbol_name}' not found")

        family, active = self._read_template_xdata(block)
        if active:
            entry.is_active = True
            return

        self._write_template_xdata(block, family, True)
        entry.is_active = True

        def undo():
            self._write_template_xdata(block, family, False)
            entry.is_active = False

        scope.register_undo(undo)

    def load_standard_templates(self) -> int:
        """
        Import template blocks from `template_library`, or build the standard
        sizes when no library is configured.

        Raises:
            TemplateLoadError: If the library file is not a readable DXF
        """
        with self.mutation_scope("Load Standard Column Templates"):
            if self.settings.template_library:
                count = self._import_template_library(self.settings.template_library)
            else:
                count = self._build_standard_templates()

        self.logger.info(f"Loaded {count} standard column templates")
        return count

    def _build_standard_templates(self) -> int:
        family = self.settings.standard_family_name
        width_name = self.settings.width_parameter_names[0]
        height_name = self.settings.height_parameter_names[0]
        count = 0

        for width, height in self.settings.standard_template_sizes:
            name = f"{family}-{symbol_name_for(width, height)}"
            if self.doc.blocks.get(name) is not None:
                continue
            self.create_template(family, name, {width_name: width, height_name: height})
            count += 1

        return count

    def _import_template_library(self, library_path: str) -> int:
        path = Path(library_path)
        if not path.exists():
            self.logger.warning(f"Template library not found: {path}")
            return 0

        try:
            source = ezdxf.readfile(str(path))
        except (IOError, ezdxf.DXFStructureError) as e:
            raise TemplateLoadError(f"Invalid template library {path}: {e}") from e

        probes = self.settings.dimension_probes
        names = []

        for block in source.blocks:
            if self.doc.blocks.get(block.name) is not None:
                continue
            tags = {attdef.dxf.tag for attdef in block.query("ATTDEF")}
            if any(n in tags for n in probes["width"]) and any(n in tags for n in probes["height"]):
                names.append(block.name)

        if not names:
            return 0

        importer = Importer(source, self.doc)
        for name in names:
            importer.import_block(name, rename=False)
        importer.finalize()

        scope = self.require_scope("import_template_library")
        for name in names:
            block = self.doc.blocks.get(name)
            self._write_template_xdata(block, self.settings.standard_family_name, False)
            scope.register_undo(lambda n=name: self.doc.blocks.delete_block(n, safe=False))
            self.logger.info(f"Imported template block '{name}' from {path.name}")

        return len(names)

    # Elements

    def _ensure_layer(self, name: str) -> None:
        if self.doc.layers.has_entry(name):
            return
        scope = self.require_scope("create_layer")
        self.doc.layers.new(name)
        scope.register_undo(lambda: self.doc.layers.remove(name))

    def create_element(self, point: Point, template: TemplateEntry, level: Level) -> str:
        scope = self.require_scope("create_element")

        block = self.doc.blocks.get(template.symbol_name)
        if block is None or not block.block.has_xdata(APP_ID):
            raise CreationError(f"Template block '{template.symbol_name}' not found")

        _, active = self._read_template_xdata(block)
        if not active:
            raise CreationError(f"Template {template} is not active")

        layer = self.level_layer(level)
        self._ensure_layer(layer)

        insert = self.msp.add_blockref(
            template.symbol_name,
            (point.x, point.y, point.z),
            dxfattribs={"layer": layer}
        )
        if template.parameters:
            insert.add_auto_attribs({tag: _format_value(v) for tag, v in template.parameters.items()})

        scope.register_undo(lambda: self.msp.delete_entity(insert))

        handle = insert.dxf.handle
        self.logger.debug(f"Inserted {template} at ({point.x:.2f}, {point.y:.2f}, {point.z:.2f}) "
                          f"on layer '{layer}' (handle {handle})")
        return handle
