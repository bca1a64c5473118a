"""
Column Placer Package

Detects closed axis-aligned rectangles drawn with line segments in a DXF
drawing and places one column inside each.

Modules:
    geometry: Points and line segments
    connectivity: Endpoint adjacency index over line segments
    rectangle_validator: 4-segment rectangle analysis
    rectangle_detector: Greedy closed-loop rectangle detection
    templates: Column template entries and dimension probing
    host: Model host interface with atomic mutation scopes
    dxf_host: ezdxf implementation of the model host
    template_resolver: Exact / derived / similar template resolution with a per-run cache
    level_selector: Nearest-elevation level choice
    batch_report: Per-rectangle outcomes and run summary
    batch_executor: Resolve / Activate / Create phases and run state
    commands: Batch and single column commands
    settings: Run configuration
    preview_renderer: PNG preview of a run
"""

__version__ = "1.0.0"

from . import geometry
from . import connectivity
from . import rectangle_validator
from . import rectangle_detector
from . import templates
from . import host
from . import dxf_host
from . import template_resolver
from . import level_selector
from . import batch_report
from . import batch_executor
from . import commands
from . import settings

__all__ = [
    'geometry', 'connectivity', 'rectangle_validator', 'rectangle_detector', 'templates',
    'host', 'dxf_host', 'template_resolver', 'level_selector', 'batch_report',
    'batch_executor', 'commands', 'settings'
]
