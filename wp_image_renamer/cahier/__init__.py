"""Cahier des charges module.

This module handles:
- The structured brief schema and site tree
- Regex parsing of free-text briefs
- Per-site persistence of the parsed brief
"""

from wp_image_renamer.cahier.parser import cahier_to_text, parse_cahier, parse_site_tree
from wp_image_renamer.cahier.schema import CahierDesCharges, CahierRecordSchema, TreeItem
from wp_image_renamer.cahier.service import (
    get_cahier,
    get_cahier_fields,
    record_to_schema,
    remove_cahier,
    set_cahier,
)

__all__ = [
    "CahierDesCharges",
    "CahierRecordSchema",
    "TreeItem",
    "cahier_to_text",
    "get_cahier",
    "get_cahier_fields",
    "parse_cahier",
    "parse_site_tree",
    "record_to_schema",
    "remove_cahier",
    "set_cahier",
]
