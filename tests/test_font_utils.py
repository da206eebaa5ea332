from brandkit.workflows.font_utils import (
    clean_font_name,
    extract_font_families,
    font_service_families,
    is_font_service_url,
    is_generic_font,
    parse_font_shorthand,
    placeholder_font_service,
)


def test_generic_families_are_excluded():
    css = 'body { font-family: "Inter", -apple-system, BlinkMacSystemFont, system-ui, sans-serif; }'
    assert extract_font_families(css) == ["Inter"]
    assert is_generic_font("BlinkMacSystemFont")
    assert is_generic_font(" Serif ")
    assert not is_generic_font("Georgia")


def test_clean_font_name_strips_quotes_and_important():
    assert clean_font_name("'Helvetica Neue' !important") == "Helvetica Neue"
    assert clean_font_name("var(--font-body)") is None
    assert clean_font_name("--brand-font") is None
    assert clean_font_name("  ") is None


def test_font_shorthand_family_after_size():
    assert parse_font_shorthand("italic bold 12px/30px Georgia, serif") == ["Georgia"]
    assert parse_font_shorthand("400 1.2em 'Source Serif Pro'") == ["Source Serif Pro"]
    assert parse_font_shorthand("caption") == []


def test_extract_font_families_combines_longhand_and_shorthand():
    css = "h1 { font: 700 2rem Montserrat, sans-serif; } p { font-family: Lora; font-size: 1rem }"
    assert extract_font_families(css) == ["Lora", "Montserrat"]


def test_google_fonts_css_v1_families():
    url = "https://fonts.googleapis.com/css?family=Open+Sans:400,700|Roboto"
    assert font_service_families(url) == ["Open Sans", "Roboto"]


def test_google_fonts_css2_repeated_family_params():
    url = "https://fonts.googleapis.com/css2?family=Inter:wght@400;700&family=Playfair+Display&display=swap"
    assert font_service_families(url) == ["Inter", "Playfair Display"]


def test_bunny_fonts_use_family_parameter():
    assert font_service_families("https://fonts.bunny.net/css?family=roboto-slab:400") == ["roboto-slab"]


def test_placeholder_services():
    assert placeholder_font_service("https://use.typekit.net/abc1234.css") == "Adobe Fonts"
    assert placeholder_font_service("https://fast.fonts.net/cssapi/x.css") == "Fonts.com"
    assert placeholder_font_service("https://example.com/site.css") is None
    assert is_font_service_url("https://use.typekit.net/abc1234.css")
    assert not is_font_service_url("https://example.com/site.css")
    assert font_service_families("https://example.com/css?family=Nope") == []
