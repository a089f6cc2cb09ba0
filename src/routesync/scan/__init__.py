"""Static scanning of route sources."""

from routesync.scan.extractor import blank_comments, columns_used, extract_references, tables_used
from routesync.scan.manifest import build_manifest
from routesync.scan.models import Reference, RouteManifest, RouteOperation, WiringFlags
from routesync.scan.wiring import audit_wiring

__all__ = [
    "Reference",
    "RouteManifest",
    "RouteOperation",
    "WiringFlags",
    "audit_wiring",
    "blank_comments",
    "build_manifest",
    "columns_used",
    "extract_references",
    "tables_used",
]
