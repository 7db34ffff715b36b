from __future__ import annotations

from ideahub.text import extract_hashtags, sanitize, truncate


def test_sanitize_strips_markup_and_script() -> None:
    raw = 'Hi <b>there</b><script>alert(1)</script> <a href="javascript:evil()" onclick=run()>x</a>'
    clean = sanitize(raw)
    assert "<" not in clean
    assert "alert" not in clean
    assert "javascript:" not in clean.lower()
    assert "onclick=" not in clean.lower()
    assert clean.startswith("Hi there")


def test_sanitize_normalises_whitespace_but_keeps_paragraphs() -> None:
    raw = "  first   line\r\n\r\n\r\n\r\nsecond\tline  "
    assert sanitize(raw) == "first line\n\nsecond line"


def test_sanitize_drops_control_characters() -> None:
    assert sanitize("a\x00b\x07c") == "abc"


def test_sanitize_defuses_mass_mentions() -> None:
    clean = sanitize("ping @everyone and @here")
    assert "@everyone" not in clean
    assert "@here" not in clean
    assert "@\u200beveryone" in clean


def test_extract_hashtags_orders_and_dedupes() -> None:
    assert extract_hashtags("I love pizza #food") == ["#food"]
    assert extract_hashtags("#Food and #drink, more #food #8") == ["#Food", "#drink"]
    assert extract_hashtags("no tags here") == []


def test_truncate() -> None:
    assert truncate("short", 10) == "short"
    out = truncate("a" * 20, 10)
    assert len(out) == 10
    assert out.endswith("…")
