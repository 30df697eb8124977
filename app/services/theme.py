"""
Client Theme

Maps a resolved BrandingConfig to the public subset consumed by the browser
and to CSS custom properties. Unresolved or disabled configs yield the
platform default theme.
"""
from typing import Dict, Optional

from app.schemas.branding import BrandingConfigRead, ClientTheme

DEFAULT_PRIMARY = "#3b82f6"
DEFAULT_SECONDARY = "#1e40af"
DEFAULT_FONT = "Inter, sans-serif"


def default_theme() -> ClientTheme:
    return ClientTheme(
        primary_color=DEFAULT_PRIMARY,
        secondary_color=DEFAULT_SECONDARY,
        font_family=DEFAULT_FONT,
    )


def to_client_theme(config: Optional[BrandingConfigRead]) -> ClientTheme:
    if config is None or not config.enabled:
        return default_theme()
    return ClientTheme(
        primary_color=config.primary_color or DEFAULT_PRIMARY,
        secondary_color=config.secondary_color or DEFAULT_SECONDARY,
        font_family=config.font_family or DEFAULT_FONT,
        logo_url=config.logo_url,
        favicon_url=config.favicon_url,
        header_text=config.header_text or config.brand_name,
        footer_text=config.footer_text,
        help_center_url=config.help_center_url,
        hide_branding=config.hide_branding,
    )


def css_variables(theme: ClientTheme) -> Dict[str, str]:
    variables = {
        "--brand-primary": theme.primary_color,
        "--brand-secondary": theme.secondary_color,
        "--brand-font": theme.font_family,
    }
    if theme.logo_url:
        variables["--brand-logo-url"] = f'url("{_css_escape(theme.logo_url)}")'
    return variables


def render_stylesheet(theme: ClientTheme) -> str:
    lines = [f"  {name}: {value};" for name, value in css_variables(theme).items()]
    return ":root {\n" + "\n".join(lines) + "\n}\n"


def _css_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "")
