"""System theme presets and theme lookup for weddings."""
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from app.models.theme import Theme
from app.models.wedding import Wedding

DEFAULT_PRESET_ID = "classic-elegance"


def _config(colors: dict, heading: str, body: str, radius: str, shadow: str, spacing: str = "1rem", background_image: str | None = None) -> dict[str, Any]:
    config: dict[str, Any] = {
        "colors": colors,
        "fonts": {"heading": heading, "body": body},
        "styles": {"buttonRadius": radius, "cardShadow": shadow, "spacing": spacing, "borderRadius": radius},
    }
    if background_image:
        config["images"] = {"background": background_image}
    return config


SYSTEM_THEMES: list[dict[str, Any]] = [
    {
        "preset_id": "classic-elegance",
        "name": "Classic Elegance",
        "description": "Timeless and sophisticated with traditional elegance",
        "config": _config(
            {"primary": "#8B7355", "secondary": "#C9B8A8", "accent": "#D4AF37", "background": "#FDFBF7",
             "text": "#2C2416", "textSecondary": "#5C5347", "border": "#E8DFD4"},
            "Playfair Display, serif", "Lora, serif", "4px", "0 2px 8px rgba(139, 115, 85, 0.15)",
        ),
    },
    {
        "preset_id": "garden-romance",
        "name": "Garden Romance",
        "description": "Soft florals and natural beauty for outdoor celebrations",
        "config": _config(
            {"primary": "#7C9473", "secondary": "#B8C5B3", "accent": "#E8A5A5", "background": "#F9FBF7",
             "text": "#2C3E2A", "textSecondary": "#5A6E56", "border": "#D9E3D6"},
            "Cormorant Garamond, serif", "Quicksand, sans-serif", "12px", "0 4px 12px rgba(124, 148, 115, 0.12)",
            spacing="1.25rem", background_image="/themes/garden/floral-pattern.svg",
        ),
    },
    {
        "preset_id": "modern-minimal",
        "name": "Modern Minimal",
        "description": "Clean lines and contemporary design",
        "config": _config(
            {"primary": "#2D3748", "secondary": "#718096", "accent": "#4299E1", "background": "#FFFFFF",
             "text": "#1A202C", "textSecondary": "#718096", "border": "#E2E8F0"},
            "Inter, sans-serif", "Inter, sans-serif", "6px", "0 1px 3px rgba(0, 0, 0, 0.1)",
        ),
    },
    {
        "preset_id": "rustic-charm",
        "name": "Rustic Charm",
        "description": "Warm and cozy with natural textures",
        "config": _config(
            {"primary": "#8B5A3C", "secondary": "#C4A484", "accent": "#D2691E", "background": "#FAF6F0",
             "text": "#3E2723", "textSecondary": "#6D4C41", "border": "#E0D5C7"},
            "Amatic SC, cursive", "Josefin Sans, sans-serif", "8px", "0 3px 10px rgba(139, 90, 60, 0.15)",
            background_image="/themes/rustic/wood-texture.svg",
        ),
    },
    {
        "preset_id": "beach-breeze",
        "name": "Beach Breeze",
        "description": "Light and airy for seaside celebrations",
        "config": _config(
            {"primary": "#2E86AB", "secondary": "#A8DADC", "accent": "#F4A261", "background": "#F8FCFD",
             "text": "#1D3557", "textSecondary": "#457B9D", "border": "#D6EAF0"},
            "Dancing Script, cursive", "Nunito, sans-serif", "16px", "0 4px 14px rgba(46, 134, 171, 0.12)",
            spacing="1.25rem",
        ),
    },
]


def seed_system_themes(db: Session) -> int:
    """Upsert system presets by preset_id. Running it again leaves the table unchanged. Commits."""
    changed = 0
    for preset in SYSTEM_THEMES:
        theme = db.query(Theme).filter(Theme.preset_id == preset["preset_id"]).first()
        values = {
            "name": preset["name"],
            "description": preset["description"],
            "config": preset["config"],
            "is_system_theme": True,
            "is_default": preset["preset_id"] == DEFAULT_PRESET_ID,
            "planner_id": None,
        }
        if theme is None:
            db.add(Theme(preset_id=preset["preset_id"], **values))
            changed += 1
            continue
        for key, value in values.items():
            if getattr(theme, key) != value:
                setattr(theme, key, value)
                changed += 1
    db.commit()
    return changed


def get_default_theme(db: Session) -> Theme | None:
    return (
        db.query(Theme)
        .filter(Theme.is_system_theme.is_(True), Theme.is_default.is_(True))
        .first()
    )


def resolve_wedding_theme(db: Session, wedding: Wedding, today: date | None = None) -> Theme | None:
    """Wedding-day theme on the day itself, else the chosen theme, else the system default."""
    if today is not None and wedding.wedding_day_theme is not None and wedding.wedding_date == today:
        return wedding.wedding_day_theme
    return wedding.theme or get_default_theme(db)


def themes_for_planner(db: Session, planner_id: int | None) -> list[Theme]:
    q = db.query(Theme).filter((Theme.is_system_theme.is_(True)) | (Theme.planner_id == planner_id))
    return q.order_by(Theme.is_system_theme.desc(), Theme.name.asc()).all()


def theme_out(theme: Theme | None) -> dict[str, Any] | None:
    if theme is None:
        return None
    return {
        "id": theme.id,
        "preset_id": theme.preset_id,
        "name": theme.name,
        "description": theme.description,
        "is_system_theme": theme.is_system_theme,
        "is_default": theme.is_default,
        "config": theme.config,
        "preview_image_url": theme.preview_image_url,
    }
