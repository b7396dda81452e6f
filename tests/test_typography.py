from pathlib import Path

from PIL import ImageFont

from phototag.render.typography import FontWatcher, find_font_files, font_candidates, load_font, truncate_text


def _measure(text: str) -> float:
    return len(text) * 6.0


def test_truncate_text_leaves_fitting_text_untouched() -> None:
    assert truncate_text("Acme", 120, _measure) == "Acme"
    assert truncate_text("", 120, _measure) == ""
    assert truncate_text("x" * 20, 120, _measure) == "x" * 20


def test_truncate_text_appends_ellipsis_within_bound() -> None:
    text = "Very Long Brand Name Incorporated International"

    output = truncate_text(text, 120, _measure)

    assert output.endswith("...")
    assert _measure(output) <= 120
    assert text.startswith(output[:-3])
    assert _measure(output[:-3] + text[len(output) - 3] + "...") > 120


def test_truncate_text_is_idempotent() -> None:
    once = truncate_text("Another Extremely Long Brand Label", 90, _measure)

    assert truncate_text(once, 90, _measure) == once


def test_truncate_text_terminates_on_tiny_bounds() -> None:
    assert truncate_text("Acme", 1, _measure) == "A..."
    assert truncate_text("Acme", 0, _measure) == "A..."
    assert truncate_text(truncate_text("Acme", 1, _measure), 1, _measure) == "A..."


def test_find_font_files_matches_family_styles_by_stem() -> None:
    paths = [
        Path("/fonts/OpenSans-Regular.ttf"),
        Path("/fonts/OpenSans-Bold.ttf"),
        Path("/fonts/OpenSansCondensed-Bold.ttf"),
        Path("/fonts/Lato-Regular.ttf"),
    ]

    faces = find_font_files("Open Sans", paths)

    assert faces == {
        "regular": Path("/fonts/OpenSans-Regular.ttf"),
        "bold": Path("/fonts/OpenSans-Bold.ttf"),
    }
    assert find_font_files("Missing Family", paths) == {}


def test_bold_faces_are_tried_before_font_path_override() -> None:
    faces = {"regular": Path("/fonts/Lato-Regular.ttf"), "bold": Path("/fonts/Lato-Bold.ttf")}
    override = Path("/custom/Brand-Regular.ttf")
    bold_override = Path("/custom/Brand-Bold.ttf")

    bold = font_candidates(faces, True, override)
    regular = font_candidates(faces, False, override)
    explicit = font_candidates(faces, True, override, bold_override)

    assert bold[:3] == [faces["bold"], override, faces["regular"]]
    assert regular[:2] == [override, faces["regular"]]
    assert faces["bold"] not in regular
    assert explicit[:3] == [bold_override, faces["bold"], override]


def test_load_font_falls_back_for_unknown_family() -> None:
    font = load_font("No Such Family 4f9a", 11)

    assert isinstance(font, (ImageFont.FreeTypeFont, ImageFont.ImageFont))
    assert font.getbbox("Acme")[2] > 0


def test_font_watcher_reports_readiness_through_callback() -> None:
    watcher = FontWatcher()
    calls: list[str] = []

    watcher.on_font_loaded("Open Sans", lambda: calls.append("ready"))

    assert calls == ["ready"]
    assert watcher.is_ready("Open Sans")
    assert not watcher.is_ready("Lato")
