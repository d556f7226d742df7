"""Regex extraction of the cahier des charges.

Briefs are French free text with "Label : value" lines. Each field takes
the first line matching its label, case-insensitively and tolerant of
missing accents and apostrophes.
"""

import re

from wp_image_renamer.cahier.schema import CahierDesCharges, TreeItem

_APOS = "['’]"

FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "company_name": re.compile(
        rf"nom\s*(?:de\s*l{_APOS})?entreprise\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "business_sector": re.compile(
        rf"secteur\s*(?:d{_APOS})?activit[eé]\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "phone": re.compile(
        r"(?:num[eé]ro\s*(?:de\s*)?)?t[eé]l[eé]phone\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "email": re.compile(
        r"(?:email|e-mail|mail)\s*(?:redirection)?\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "address": re.compile(r"adresse\s*(?:postale)?\s*[:\-]?\s*(.+)", re.IGNORECASE),
    "site_goal": re.compile(
        r"objectif\s*(?:du\s*)?site\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "site_audience": re.compile(
        r"cible\s*(?:du\s*)?site\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "activity_zones": re.compile(
        rf"zones?\s*(?:d{_APOS})?activit[eé]\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
    "tone": re.compile(r"ton\s*[àa]\s*adopter\s*[:\-]?\s*(.+)", re.IGNORECASE),
    "main_service": re.compile(r"service\s*principal\s*[:\-]?\s*(.+)", re.IGNORECASE),
    "brand_guidelines": re.compile(
        r"charte\s*graphique\s*[:\-]?\s*(.+)", re.IGNORECASE
    ),
}

CITIES_PATTERN = re.compile(r"villes?\s*choisies?\s*[:\-]?\s*(.+)", re.IGNORECASE)

# The tree block ends at a blank line or at a line starting with any letter
TREE_PATTERN = re.compile(
    r"arborescence\s*[:\-]?\s*([\s\S]*?)(?=\n\n|\n[A-Z]|\Z)", re.IGNORECASE
)

_INDENT = re.compile(r"^[\s\-•*]*")
_BULLET_PREFIX = re.compile(r"^[\s\-•*]+")
_TITLE_WITH_INFO = re.compile(r"^(.+?)\s*\((.+?)\)\s*$")

# Canonical labels, in rendering order
FIELD_LABELS: list[tuple[str, str]] = [
    ("company_name", "Nom entreprise"),
    ("business_sector", "Secteur activite"),
    ("phone", "Numero telephone"),
    ("email", "Email redirection"),
    ("address", "Adresse postale"),
    ("site_goal", "Objectif site"),
    ("site_audience", "Cible site"),
    ("activity_zones", "Zones activite"),
    ("chosen_cities", "Villes choisies"),
    ("tone", "Ton a adopter"),
    ("main_service", "Service principal"),
    ("brand_guidelines", "Charte graphique"),
]


def parse_site_tree(text: str) -> list[TreeItem]:
    """Parse an indented outline into a tree.

    Two characters of indentation (spaces or bullet characters) make one
    level. "Title (info)" lines are split into title and info.
    """
    roots: list[TreeItem] = []
    stack: list[tuple[TreeItem, int]] = []

    for line in text.split("\n"):
        if not line.strip():
            continue
        indent = _INDENT.match(line)
        level = len(indent.group(0)) // 2 if indent else 0
        content = _BULLET_PREFIX.sub("", line).strip()
        if not content:
            continue

        info_match = _TITLE_WITH_INFO.match(content)
        if info_match:
            item = TreeItem(
                title=info_match.group(1).strip(), info=info_match.group(2).strip()
            )
        else:
            item = TreeItem(title=content)

        while stack and stack[-1][1] >= level:
            stack.pop()
        if stack:
            stack[-1][0].children.append(item)
        else:
            roots.append(item)
        stack.append((item, level))

    return roots


def parse_cahier(text: str) -> CahierDesCharges:
    """Extract the structured fields of a brief.

    Args:
        text: Raw brief text (typed, pasted or extracted from a PDF).

    Returns:
        CahierDesCharges with only the fields that were found.
    """
    values: dict[str, object] = {}

    for key, pattern in FIELD_PATTERNS.items():
        match = pattern.search(text)
        if match and match.group(1):
            values[key] = match.group(1).strip()

    cities_match = CITIES_PATTERN.search(text)
    if cities_match and cities_match.group(1):
        values["chosen_cities"] = [
            city.strip()
            for city in re.split(r"[,;]", cities_match.group(1))
            if city.strip()
        ]

    tree_match = TREE_PATTERN.search(text)
    if tree_match and tree_match.group(1):
        values["site_tree"] = parse_site_tree(tree_match.group(1))

    return CahierDesCharges.model_validate(values)


def cahier_to_text(cahier: CahierDesCharges) -> str:
    """Render a cahier back to "Label : value" lines.

    The output parses back to the same scalar fields and cities.
    """
    lines = []
    for key, label in FIELD_LABELS:
        value = getattr(cahier, key)
        if not value:
            continue
        if isinstance(value, list):
            value = ", ".join(value)
        lines.append(f"{label} : {value}")
    return "\n".join(lines)


__all__ = [
    "FIELD_LABELS",
    "FIELD_PATTERNS",
    "cahier_to_text",
    "parse_cahier",
    "parse_site_tree",
]
