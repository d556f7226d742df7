"""Naming context and LLM prompt.

The prompt is written in French: the tool targets French local-business
sites and the generated filenames and alt texts must be French.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_ALT_TEXT_LENGTH = 125


class RenameContext(BaseModel):
    """Business and page context used to name one image.

    Attributes:
        page_title: Title of the target page.
        page_slug: Slug of the target page.
        company_name: Company name from the cahier des charges.
        business_sector: Business sector.
        cities: Main localities targeted by the site.
        main_service: Main service offered.
        custom_instructions: Free-form per-image instructions.
        original_filename: Name of the file as uploaded.
        image_index: Position of the image within its batch.
    """

    model_config = ConfigDict(extra="ignore")

    page_title: str = ""
    page_slug: str = ""
    company_name: str = ""
    business_sector: str = ""
    cities: list[str] = Field(default_factory=list)
    main_service: str = ""
    custom_instructions: str | None = None
    original_filename: str | None = None
    image_index: int | None = None

    @model_validator(mode="after")
    def require_target_page(self) -> RenameContext:
        """A target page (title or slug) is required to name an image."""
        if not self.page_title and not self.page_slug:
            raise ValueError("A target page is required to generate an SEO name")
        return self


def build_prompt(context: RenameContext, has_image: bool) -> str:
    """Build the naming prompt for one image."""
    unspecified = "Non spécifié"
    intro = "Analyse l'image fournie et génère" if has_image else "Génère"
    original = (
        f"- Nom original du fichier : {context.original_filename}\n"
        if context.original_filename
        else ""
    )

    return f"""Tu es un expert SEO spécialisé dans le nommage de fichiers images et la rédaction de textes alternatifs pour le référencement.

{intro} :
1. Un nom de fichier optimisé SEO
2. Un texte alternatif (alt text) descriptif pour l'accessibilité et le SEO

CONTEXTE :
- Entreprise : {context.company_name or unspecified}
- Secteur : {context.business_sector or unspecified}
- Page cible : {context.page_title} (slug: {context.page_slug})
- Service principal : {context.main_service or unspecified}
- Localités : {", ".join(context.cities) or unspecified}
- Consignes additionnelles : {context.custom_instructions or "Aucune"}
{original}
RÈGLES POUR LE NOM DE FICHIER :
1. Format : slug en minuscules avec tirets (pas d'underscores)
2. Pas d'accents ni caractères spéciaux
3. Maximum 60 caractères
4. Inclure si pertinent : service + localité + descripteur de ce que montre l'image
5. Éviter les mots génériques seuls (image, photo, img)
6. Pas d'extension dans le nom

RÈGLES POUR LE TEXTE ALTERNATIF :
1. Décrire ce que montre l'image de manière concise
2. Inclure le contexte métier si pertinent (entreprise, service)
3. Maximum {MAX_ALT_TEXT_LENGTH} caractères
4. Pas de "Image de..." ou "Photo de..." au début
5. Utile pour l'accessibilité et le SEO

EXEMPLES :
Nom: paysagiste-evreux-terrasse-bois-moderne
Alt: Terrasse en bois exotique réalisée par un paysagiste à Évreux avec jardinières intégrées

Nom: elagage-arbre-chene-vernon
Alt: Élagueur professionnel intervenant sur un chêne centenaire à Vernon

Réponds UNIQUEMENT au format JSON suivant, sans autre texte :
{{"filename": "nom-du-fichier", "altText": "Texte alternatif descriptif"}}"""


__all__ = ["MAX_ALT_TEXT_LENGTH", "RenameContext", "build_prompt"]
