"""
Client Theme Tests
"""
from app.models.branding import DomainStatus
from app.schemas.branding import BrandingConfigRead
from app.services.theme import (
    DEFAULT_FONT,
    DEFAULT_PRIMARY,
    DEFAULT_SECONDARY,
    css_variables,
    render_stylesheet,
    to_client_theme,
)


def _config(**fields) -> BrandingConfigRead:
    base = dict(tenant_id="tenant-a", enabled=True)
    base.update(fields)
    return BrandingConfigRead(**base)


def test_unresolved_config_yields_default_theme():
    theme = to_client_theme(None)
    assert theme.primary_color == DEFAULT_PRIMARY
    assert theme.secondary_color == DEFAULT_SECONDARY
    assert theme.logo_url is None
    assert theme.font_family == DEFAULT_FONT
    assert theme.help_center_url is None
    assert theme.hide_branding is False


def test_disabled_config_yields_default_theme():
    theme = to_client_theme(_config(enabled=False, primary_color="#ff0000", hide_branding=True))
    assert theme.primary_color == DEFAULT_PRIMARY
    assert theme.hide_branding is False


def test_enabled_config_maps_public_fields():
    theme = to_client_theme(_config(
        primary_color="#123456",
        logo_url="https://cdn.example.com/logo.png",
        favicon_url="https://cdn.example.com/favicon.ico",
        footer_text="© Acme",
        hide_branding=True,
        custom_domain="shop.example.com",
        domain_status=DomainStatus.ACTIVE,
    ))
    assert theme.primary_color == "#123456"
    assert theme.secondary_color == DEFAULT_SECONDARY
    assert theme.favicon_url == "https://cdn.example.com/favicon.ico"
    assert theme.footer_text == "© Acme"
    assert theme.hide_branding is True

    body = theme.model_dump(by_alias=True)
    assert set(body) == {
        "primaryColor", "secondaryColor", "fontFamily", "logoUrl", "faviconUrl",
        "headerText", "footerText", "helpCenterUrl", "hideBranding",
    }


def test_header_text_falls_back_to_brand_name():
    assert to_client_theme(_config(brand_name="Acme")).header_text == "Acme"
    assert to_client_theme(_config(brand_name="Acme", header_text="Welcome")).header_text == "Welcome"


def test_css_variables_and_stylesheet():
    theme = to_client_theme(_config(primary_color="#abc", logo_url='https://cdn.example.com/a"b.png'))

    variables = css_variables(theme)
    assert variables["--brand-primary"] == "#abc"
    assert variables["--brand-secondary"] == DEFAULT_SECONDARY
    assert variables["--brand-font"] == DEFAULT_FONT
    assert variables["--brand-logo-url"] == 'url("https://cdn.example.com/a\\"b.png")'

    css = render_stylesheet(theme)
    assert css.startswith(":root {\n")
    assert "  --brand-primary: #abc;\n" in css
    assert css.endswith("}\n")


def test_font_family_and_help_center_url():
    theme = to_client_theme(_config(
        font_family="'Noto Sans TC', sans-serif",
        help_center_url="https://help.example.com",
    ))
    assert theme.font_family == "'Noto Sans TC', sans-serif"
    assert theme.help_center_url == "https://help.example.com"
    assert "  --brand-font: 'Noto Sans TC', sans-serif;\n" in render_stylesheet(theme)

    # 停用時不外洩租戶設定
    disabled = to_client_theme(_config(enabled=False, font_family="Comic Sans MS", help_center_url="https://x"))
    assert disabled.font_family == DEFAULT_FONT
    assert disabled.help_center_url is None
