"""Invitation-page designs: block pre-rendering per language and theme re-application.

A design is {"globalStyle": {...}, "blocks": [...]}. Text and image blocks are rendered
to static HTML for every language; location, countdown and add-to-calendar blocks are
interactive and rendered client-side, so they get no entry.
"""
import copy
import logging
import uuid
from html import escape
from typing import Any

from sqlalchemy.orm import Session

from app.models.template import InvitationTemplate
from app.models.wedding import LANGUAGES

log = logging.getLogger(__name__)

BLOCK_TYPES = ("text", "image", "location", "countdown", "add-to-calendar")
PRERENDERED_BLOCK_TYPES = ("text", "image")

_HEADING = {"ES": "Nos vamos a casar", "EN": "We Are Getting Married", "FR": "Nous allons nous marier", "IT": "Ci sposiamo", "DE": "Wir heiraten"}


def _attr(value: Any) -> str:
    return escape(str(value if value is not None else ""), quote=True)


def _same(value: str) -> dict[str, str]:
    return {lang: value for lang in LANGUAGES}


def localized_text(content: dict[str, str] | str | None, language: str) -> str:
    """Requested language, then EN, then the first non-empty value."""
    if isinstance(content, str):
        return content
    if not content:
        return ""
    if content.get(language):
        return content[language]
    if content.get("EN"):
        return content["EN"]
    return next((v for v in content.values() if v), "")


def render_block(block: dict[str, Any], language: str) -> str:
    block_type = block.get("type")
    if block_type == "text":
        style = block.get("style") or {}
        text = escape(localized_text(block.get("content"), language))
        background = ""
        if style.get("backgroundImage"):
            background = (
                '<div style="position:absolute;inset:0;z-index:-10;'
                f"background-image:url({_attr(style['backgroundImage'])});"
                'background-size:cover;background-position:center;background-repeat:no-repeat;"></div>'
            )
        return (
            f'<div style="position:relative;font-family:{_attr(style.get("fontFamily", "inherit"))};'
            f'font-size:{_attr(style.get("fontSize", "1rem"))};color:{_attr(style.get("color", "inherit"))};'
            f'text-align:{_attr(style.get("textAlign", "center"))};white-space:pre-line;padding:0 1rem;margin:0;">'
            f"{background}{text}</div>"
        )
    if block_type == "image":
        alignment = block.get("alignment") or "center"
        if alignment not in ("left", "right", "center"):
            alignment = "center"
        zoom = block.get("zoom") or 100
        return (
            f'<div style="text-align:{alignment};margin:0;line-height:0;">'
            f'<img src="{_attr(block.get("src"))}" alt="{_attr(block.get("alt"))}" '
            f'style="width:{int(zoom)}%;height:auto;border-radius:0.5rem;display:inline-block;vertical-align:middle;margin:0;" />'
            "</div>"
        )
    return ""


def prerender_design(design: dict[str, Any]) -> dict[str, dict[str, str]]:
    """{language: {block_id: html}} for every supported language."""
    blocks = [b for b in (design or {}).get("blocks", []) if b.get("type") in PRERENDERED_BLOCK_TYPES]
    return {lang: {str(b.get("id")): render_block(b, lang) for b in blocks} for lang in LANGUAGES}


def apply_theme_to_design(design: dict[str, Any], theme_config: dict[str, Any] | None) -> dict[str, Any]:
    """Copy of design with globalStyle background taken from the theme."""
    updated = copy.deepcopy(design or {})
    if not theme_config:
        return updated
    global_style = updated.setdefault("globalStyle", {})
    global_style["backgroundColor"] = (theme_config.get("colors") or {}).get("background")
    background_image = (theme_config.get("images") or {}).get("background")
    if background_image:
        global_style["backgroundImage"] = background_image
    else:
        global_style.pop("backgroundImage", None)
    return updated


def default_design(theme_config: dict[str, Any]) -> dict[str, Any]:
    """Starter design for a new template: heading, couple names, date, countdown, location."""
    colors = theme_config.get("colors") or {}
    fonts = theme_config.get("fonts") or {}

    def text_block(content: dict[str, str], size: str, font: str, color: str) -> dict[str, Any]:
        return {
            "id": str(uuid.uuid4()),
            "type": "text",
            "content": content,
            "style": {"fontFamily": font, "fontSize": size, "color": color, "textAlign": "center"},
        }

    design = {
        "globalStyle": {"fontFamily": fonts.get("body")},
        "blocks": [
            text_block(_HEADING, "1.25rem", fonts.get("heading"), colors.get("textSecondary") or colors.get("text")),
            text_block(_same("{{couple_names}}"), "2.5rem", fonts.get("heading"), colors.get("primary")),
            text_block(_same("{{wedding_date}}"), "1.125rem", fonts.get("body"), colors.get("text")),
            {"id": str(uuid.uuid4()), "type": "countdown"},
            {"id": str(uuid.uuid4()), "type": "location"},
            {"id": str(uuid.uuid4()), "type": "add-to-calendar"},
        ],
    }
    return apply_theme_to_design(design, theme_config)


def rerender_wedding_templates(db: Session, wedding_id: int, theme_config: dict[str, Any] | None) -> int:
    """Re-apply the theme and pre-render every template of the wedding. Flushes; returns count."""
    templates = db.query(InvitationTemplate).filter(InvitationTemplate.wedding_id == wedding_id).all()
    for template in templates:
        design = apply_theme_to_design(template.design, theme_config)
        template.design = design
        template.pre_rendered_html = prerender_design(design)
    db.flush()
    if templates:
        log.info("[Re-render] Re-rendered %d templates for wedding %s", len(templates), wedding_id)
    return len(templates)
